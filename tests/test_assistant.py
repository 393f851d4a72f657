import pytest

from erphub.schemas.assistant import ChatMessage, SystemContext
from erphub.services import assistant
from erphub.services.assistant import chat, match_intent, GREETINGS, GUIDANCE_REPLY, COMPLETION_FAILED_REPLY
from erphub.services.completion_client import CompletionError
from erphub.services.leave import create_leave_request, update_leave_request, update_leave_balance


@pytest.mark.parametrize(
    "text,intent",
    [
        ("hello there", "greeting"),
        ("how are you today?", "small_talk"),
        ("thanks a lot", "thanks"),
        ("bye for now", "farewell"),
        ("what is erp hub", "explain"),
        ("what can you do", "capability"),
        ("show my leave balance", "leave"),
        ("list my invoices", "invoice"),
        ("send a quote", "proposal"),
        ("financial summary please", "financial"),
        ("my goals", "performance"),
        ("did i clock in", "attendance"),
        ("how do i export data", "how_to"),
    ],
)
def test_intent_matching(text, intent):
    assert match_intent(text).name == intent


def test_greeting_requires_word_boundary():
    # "history" starts with "hi" but is not a greeting
    assert match_intent("history of my invoices").name == "invoice"


def test_first_matching_intent_wins():
    # Mentions both leave and invoices; leave is checked first
    assert match_intent("leave and invoice questions").name == "leave"


def test_greeting_reply_is_one_of_the_fixed_greetings(db):
    assert chat(db, "Hi!") in GREETINGS


def test_capability_reply_differs_by_role(db):
    staff_reply = chat(db, "what can you do", context=SystemContext(user_id="x", user_role="staff"))
    admin_reply = chat(db, "what can you do", context=SystemContext(user_id="x", user_role="admin"))
    assert "Privacy Note" in staff_reply
    assert "Privacy Note" not in admin_reply
    assert "(all staff)" in admin_reply


def test_leave_balance_reports_caller_balance(db, staff, ctx):
    update_leave_balance(db, staff.id, annual_total=25, annual_used=5)
    reply = chat(db, "What's my leave balance?", context=ctx(staff))
    assert "Your Leave Balance:" in reply
    assert "• Annual Leave: 20 / 25 days remaining" in reply
    assert "• Sick Leave: 10 / 10 days remaining" in reply


def test_leave_balance_is_isolated_between_users(db, company, make_user, ctx):
    alice = make_user(company=company)
    bob = make_user(company=company)
    req = create_leave_request(db, alice.id, "annual", *_days("2024-03-04", "2024-03-08"))
    update_leave_request(db, req.id, "approved")

    alice_reply = chat(db, "leave balance", context=ctx(alice))
    bob_reply = chat(db, "leave balance", context=ctx(bob))
    assert "Annual Leave: 15 / 20" in alice_reply
    assert "Annual Leave: 20 / 20" in bob_reply


def test_leave_balance_requires_identity(db):
    reply = chat(db, "leave balance", context=SystemContext())
    assert "Please make sure you're logged in" in reply


def test_leave_request_mentions_remaining_days(db, staff, ctx):
    reply = chat(db, "I want to request sick leave", context=ctx(staff))
    assert "sick leave request" in reply
    assert "10 days remaining for sick leave" in reply


def test_invoice_summary_counts(db, staff, ctx):
    from erphub.services.invoices import create_invoice

    create_invoice(db, staff.company_id, staff.id, "Client A", [{"description": "x", "quantity": 1, "unit_price": 10}],
                   status="paid")
    create_invoice(db, staff.company_id, staff.id, "Client B", [{"description": "y", "quantity": 2, "unit_price": 5}],
                   status="pending")
    reply = chat(db, "show my invoices", context=ctx(staff))
    assert "• Total Invoices: 2" in reply
    assert "• Paid: 1" in reply
    assert "• Pending: 1" in reply


def test_invoice_summary_counts_only_pending_status_as_pending(db, staff, ctx):
    from datetime import date

    from erphub.services.invoices import create_invoice

    for status in ("sent", "approved"):
        create_invoice(db, staff.company_id, staff.id, "Client", [{"description": "x", "quantity": 1, "unit_price": 10}],
                       status=status, due_date=date(2099, 1, 1))
    reply = chat(db, "show my invoices", context=ctx(staff))
    assert "• Total Invoices: 2" in reply
    assert "• Pending: 0" in reply
    assert "• Overdue: 0" in reply


def test_unmatched_without_backend_returns_guidance(db, staff, ctx):
    assert chat(db, "tell a joke about penguins", context=ctx(staff)) == GUIDANCE_REPLY


def test_unmatched_uses_completion_backend(db, staff, ctx, monkeypatch):
    captured = {}

    class FakeClient:
        def complete(self, messages):
            captured["messages"] = messages
            return "Penguins cannot fly."

    monkeypatch.setattr(assistant, "is_configured", lambda: True)
    monkeypatch.setattr(assistant, "CompletionClient", FakeClient)
    history = [ChatMessage(role="user", content=f"m{i}") for i in range(15)]

    reply = chat(db, "tell a joke about penguins", history=history, context=ctx(staff))

    assert reply == "Penguins cannot fly."
    messages = captured["messages"]
    assert messages[0]["role"] == "system"
    assert "STAFF member" in messages[0]["content"]
    assert "Leave Balance: Annual 20/20" in messages[0]["content"]
    # system + last 10 history entries + the new message
    assert len(messages) == 12
    assert messages[1]["content"] == "m5"
    assert messages[-1] == {"role": "user", "content": "tell a joke about penguins"}


def test_completion_failure_returns_fixed_apology(db, staff, ctx, monkeypatch):
    class BrokenClient:
        def complete(self, messages):
            raise CompletionError("timeout")

    monkeypatch.setattr(assistant, "is_configured", lambda: True)
    monkeypatch.setattr(assistant, "CompletionClient", BrokenClient)
    assert chat(db, "tell a joke", context=ctx(staff)) == COMPLETION_FAILED_REPLY


def test_handler_errors_become_replies(db, monkeypatch):
    def boom(turn):
        raise RuntimeError("database unavailable")

    intents = tuple(
        assistant.Intent(i.name, i.predicate, boom) if i.name == "greeting" else i
        for i in assistant.INTENTS
    )
    monkeypatch.setattr(assistant, "INTENTS", intents)
    assert chat(db, "hello") == "I encountered an error: database unavailable"


def _days(start, end):
    from datetime import date

    return date.fromisoformat(start), date.fromisoformat(end)
