from erphub.models.models import AuditLog, Notification
from erphub.services import staff as staff_service


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_and_me(client, make_user, company):
    user = make_user(company=company, password="pa55word")

    bad = client.post("/auth/login", json={"email": user.email, "password": "nope"})
    assert bad.status_code == 401

    ok = client.post("/auth/login", json={"email": user.email.upper(), "password": "pa55word"})
    assert ok.status_code == 200
    token = ok.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == user.email
    assert me.json()["companyId"] == str(company.id)


def test_refresh(client, staff):
    login = client.post("/auth/login", json={"email": staff.email, "password": "secret123"}).json()
    refreshed = client.post("/auth/refresh", json={"refreshToken": login["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["access_token"]


def test_requires_authentication(client):
    assert client.get("/invoices").status_code == 401


def test_staff_only_list_their_own_invoices(client, company, make_user, admin, auth):
    alice = make_user(company=company)
    bob = make_user(company=company)
    body = {
        "clientName": "Harbour Foods",
        "clientEmail": "accounts@harbour.test",
        "items": [{"description": "Freight", "quantity": 2, "unitPrice": 150}],
        "tax": 15,
    }
    created = client.post("/invoices", json=body, headers=auth(alice))
    assert created.status_code == 200
    assert created.json()["total"] == 315
    assert created.json()["invoiceNumber"].startswith("INV-")

    assert client.get("/invoices", headers=auth(bob)).json() == []
    assert len(client.get("/invoices", headers=auth(alice)).json()) == 1
    assert len(client.get("/invoices", headers=auth(admin)).json()) == 1


def test_staff_cannot_open_someone_elses_invoice(client, company, make_user, auth):
    alice = make_user(company=company)
    bob = make_user(company=company)
    invoice = client.post("/invoices", json={"clientName": "X"}, headers=auth(alice)).json()

    assert client.get(f"/invoices/{invoice['id']}", headers=auth(bob)).status_code == 403
    assert client.delete(f"/invoices/{invoice['id']}", headers=auth(alice)).status_code == 403


def test_domain_errors_map_to_status_codes(client, staff, auth):
    missing = client.get("/invoices/00000000-0000-0000-0000-000000000000", headers=auth(staff))
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Invoice not found"}

    bad = client.post(
        "/leave/requests",
        json={"type": "annual", "startDate": "2024-07-05", "endDate": "2024-07-01"},
        headers=auth(staff),
    )
    assert bad.status_code == 400
    assert bad.json()["detail"] == "End date must be on or after start date"


def test_leave_approval_notifies_and_audits(client, db, staff, admin, auth):
    req = client.post(
        "/leave/requests",
        json={"type": "annual", "startDate": "2024-07-01", "endDate": "2024-07-02"},
        headers=auth(staff),
    ).json()

    decided = client.patch(f"/leave/requests/{req['id']}", json={"status": "approved"}, headers=auth(admin))
    assert decided.status_code == 200
    assert decided.json()["status"] == "approved"

    balance = client.get("/leave/balance", headers=auth(staff)).json()
    assert balance["annual"] == {"total": 20, "used": 2, "remaining": 18}

    notes = client.get("/notifications", headers=auth(staff)).json()
    assert len(notes) == 1 and notes[0]["type"] == "leave"
    assert client.get("/notifications/unread-count", headers=auth(staff)).json() == {"count": 1}

    actions = [row.action for row in db.query(AuditLog).filter(AuditLog.entity_type == "leave_request")]
    assert sorted(actions) == ["APPROVE", "CREATE"]
    assert db.query(Notification).count() == 1


def test_audit_logs_are_admin_only(client, staff, admin, auth):
    client.post("/invoices", json={"clientName": "X"}, headers=auth(staff))

    assert client.get("/audit-logs", headers=auth(staff)).status_code == 403
    logs = client.get("/audit-logs", params={"entity_type": "invoice"}, headers=auth(admin)).json()
    assert len(logs) == 1
    assert logs[0]["action"] == "CREATE"
    assert logs[0]["integrityHash"]


def test_chat_endpoint(client, staff, auth):
    reply = client.post("/ai/chat", json={"message": "what's my leave balance?"}, headers=auth(staff))
    assert reply.status_code == 200
    assert reply.json()["reply"].startswith("Your Leave Balance:")

    blank = client.post("/ai/chat", json={"message": "   "}, headers=auth(staff))
    assert blank.status_code == 422


def test_insights_are_scoped_to_their_owner(client, company, make_user, admin, auth):
    alice = make_user(company=company)
    bob = make_user(company=company)
    generated = client.post("/ai/insights", json={"type": "attendance"}, headers=auth(alice))
    assert generated.status_code == 200
    assert generated.json()["title"] == "Low Attendance Rate Alert"

    assert client.get("/ai/insights", headers=auth(bob)).json() == []
    assert len(client.get("/ai/insights", headers=auth(alice)).json()) == 1
    assert client.get(f"/ai/insights/{generated.json()['id']}", headers=auth(bob)).status_code == 404

    assert client.delete(f"/ai/insights/{generated.json()['id']}", headers=auth(alice)).status_code == 403
    assert client.delete(f"/ai/insights/{generated.json()['id']}", headers=auth(admin)).status_code == 200


def test_report_summary_and_decision_suggestions(client, staff, auth):
    summary = client.post("/ai/report-summary", json={"reportType": "financial", "data": {"netProfit": 10}},
                          headers=auth(staff))
    assert summary.status_code == 200
    assert summary.json()["summary"].startswith("AI-generated summary:")

    decision = client.post("/ai/suggest-decision", json={"context": "hire a second driver", "options": ["yes", "no"]},
                           headers=auth(staff))
    assert decision.status_code == 200
    assert decision.json()["recommendations"] == [
        "Review current metrics and trends",
        "Consider implementing suggested improvements",
        "Schedule follow-up review meetings",
    ]

    assert client.post("/ai/suggest-decision", json={"context": "x"}).status_code == 401


def test_welcome_email_failure_does_not_fail_request(client, admin, auth, monkeypatch):
    def refuse(to, subject, html):
        raise RuntimeError("SMTP not configured")

    monkeypatch.setattr(staff_service, "send_or_raise", refuse)
    created = client.post(
        "/staff",
        json={"email": "new.hire@example.com", "password": "welcome1", "firstName": "Nia", "sendWelcomeEmail": True},
        headers=auth(admin),
    )
    assert created.status_code == 200
    assert created.json()["email"] == "new.hire@example.com"


def test_banned_user_is_locked_out(client, staff, admin, auth):
    assert client.post(f"/staff/{staff.id}/ban", headers=auth(admin)).status_code == 200
    assert client.get("/auth/me", headers=auth(staff)).status_code == 401
    login = client.post("/auth/login", json={"email": staff.email, "password": "secret123"})
    assert login.status_code == 403


def test_delivery_pdf_download(client, staff, auth):
    delivery = client.post(
        "/deliveries",
        json={
            "deliveryType": "sea",
            "date": "2024-06-15",
            "clientName": "Blue Dhow",
            "departure": "China",
            "destination": "Lagos",
            "items": [{"name": "Generator"}],
        },
        headers=auth(staff),
    )
    assert delivery.status_code == 200

    pdf = client.get(f"/deliveries/{delivery.json()['id']}/pdf", headers=auth(staff))
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert "Sea_Delivery_Blue_Dhow_2024-06-15.pdf" in pdf.headers["content-disposition"]
    assert pdf.content.startswith(b"%PDF")


def test_product_sale_updates_stock(client, staff, auth):
    product = client.post("/products", json={"name": "Toyota Hilux bumper", "quantity": 2}, headers=auth(staff)).json()
    sale = client.post(
        f"/products/{product['id']}/sales",
        json={"clientName": "Garage 7", "quantity": 2, "unitPrice": 120.5},
        headers=auth(staff),
    )
    assert sale.status_code == 200
    assert sale.json()["totalAmount"] == 241

    after = client.get(f"/products/{product['id']}", headers=auth(staff)).json()
    assert after["quantity"] == 0
    assert after["status"] == "sold"

    oversell = client.post(
        f"/products/{product['id']}/sales",
        json={"clientName": "Garage 7", "quantity": 1, "unitPrice": 1},
        headers=auth(staff),
    )
    assert oversell.status_code == 400


def test_messages_between_users(client, company, make_user, auth):
    alice = make_user(company=company)
    bob = make_user(company=company)
    sent = client.post("/messages", json={"toUserId": str(bob.id), "content": "Container arrived"}, headers=auth(alice))
    assert sent.status_code == 200

    assert client.get("/messages/unread-count", headers=auth(bob)).json() == {"count": 1}
    conversations = client.get("/messages/conversations", headers=auth(bob)).json()
    assert conversations[0]["userId"] == str(alice.id)
    assert conversations[0]["unreadCount"] == 1

    client.post(f"/messages/with/{alice.id}/read", headers=auth(bob))
    assert client.get("/messages/unread-count", headers=auth(bob)).json() == {"count": 0}

    to_self = client.post("/messages", json={"toUserId": str(alice.id), "content": "hi"}, headers=auth(alice))
    assert to_self.status_code == 400


def test_email_send_contract(client, admin, auth):
    missing = client.post("/email/send", json={"to": "a@example.com"}, headers=auth(admin))
    assert missing.json() == {"success": False, "error": "Missing fields"}

    unconfigured = client.post(
        "/email/send",
        json={"to": "a@example.com", "subject": "Hi", "html": "<p>Hi</p>"},
        headers=auth(admin),
    )
    assert unconfigured.json() == {"success": False, "error": "SMTP not configured"}
