"""
Rule-based chat assistant.

A message is normalised (lower-cased, trimmed) and matched against INTENTS in
order; the first intent whose predicate accepts the text produces the reply.
Handlers only read data. Anything unmatched goes to the completion backend
when one is configured.
"""
import random
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from ..config import settings
from ..schemas.assistant import ChatMessage, SystemContext
from .attendance import get_today_attendance
from .completion_client import CompletionClient, CompletionError, is_configured
from .context import personal_user_id, scoped_filters
from .financial import get_financial_summary
from .invoices import get_invoices, status_counts
from .leave import LEAVE_TYPES, get_leave_balance
from .performance import get_goals, get_performance_reviews
from .time_rules import to_local

logger = structlog.get_logger(__name__)

ASSISTANT_NAME = "ERP Hub AI Assistant"
SYSTEM_NAME = "ERP Hub"
HISTORY_LIMIT = settings.chat_history_limit


@dataclass
class Turn:
    """Everything a handler may look at for one chat message."""

    db: Session
    text: str
    message: str
    context: SystemContext
    history: List[ChatMessage] = field(default_factory=list)


@dataclass(frozen=True)
class Intent:
    name: str
    predicate: Callable[[str], bool]
    handler: Callable[[Turn], str]


def _contains_any(text: str, *needles: str) -> bool:
    return any(n in text for n in needles)


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _apology(thing: str, error: Exception) -> str:
    logger.warning("assistant_fetch_failed", thing=thing, error=str(error))
    return f"I couldn't retrieve your {thing}. {str(error) or 'Please try again later.'}"


# Predicates

GREETING_RE = re.compile(r"^(hi|hello|hey|greetings|good morning|good afternoon|good evening|sup|what's up|howdy)\b")
SMALL_TALK_RE = re.compile(r"^(how are you|how's it going|how do you do|what's going on)")
THANKS_RE = re.compile(r"^(thanks|thank you|thx|appreciate it)")
FAREWELL_RE = re.compile(r"^(bye|goodbye|see you|farewell|later)")


def is_greeting(text: str) -> bool:
    return bool(GREETING_RE.match(text))


def is_small_talk(text: str) -> bool:
    return bool(SMALL_TALK_RE.match(text))


def is_thanks(text: str) -> bool:
    return bool(THANKS_RE.match(text))


def is_farewell(text: str) -> bool:
    return bool(FAREWELL_RE.match(text))


def is_explain(text: str) -> bool:
    return _contains_any(text, "what is", "what are", "explain", "tell me about")


def is_capability(text: str) -> bool:
    return _contains_any(text, "what can you do", "help", "capabilities", "what do you do")


def is_leave(text: str) -> bool:
    return _contains_any(text, "leave", "vacation", "time off")


def is_invoice(text: str) -> bool:
    return _contains_any(text, "invoice", "bill")


def is_proposal(text: str) -> bool:
    return _contains_any(text, "proposal", "estimate", "quote")


def is_financial(text: str) -> bool:
    return _contains_any(text, "financial", "revenue", "expense", "profit", "money")


def is_performance(text: str) -> bool:
    return _contains_any(text, "performance", "goal", "kpi", "review")


def is_attendance(text: str) -> bool:
    return _contains_any(text, "attendance", "clock", "time in", "time out")


def is_how_to(text: str) -> bool:
    return _contains_any(text, "how to", "how do i")


# Handlers

GREETINGS = (
    "Hello! Great to see you! How can I assist you today?",
    "Hi there! I'm here to help. What would you like to know?",
    "Hey! Nice to meet you! How can I be of service?",
    f"Hello! I'm your {ASSISTANT_NAME}. What can I help you with today?",
    "Hi! Welcome! I'm here to help with anything you need.",
)


def handle_greeting(turn: Turn) -> str:
    return random.choice(GREETINGS)


def handle_small_talk(turn: Turn) -> str:
    return (
        "I'm doing great, thank you for asking! I'm here and ready to help you with anything you need, "
        f"whether it's about the {SYSTEM_NAME} system, general questions, or just having a conversation. "
        "What's on your mind?"
    )


def handle_thanks(turn: Turn) -> str:
    return "You're very welcome! I'm glad I could help. Is there anything else you'd like to know or need assistance with?"


def handle_farewell(turn: Turn) -> str:
    return "Goodbye! It was great chatting with you. Feel free to come back anytime if you need help. Have a wonderful day!"


def handle_explain(turn: Turn) -> str:
    if _contains_any(turn.text, "erp", "system", SYSTEM_NAME.lower()):
        return (
            f"{SYSTEM_NAME} is a comprehensive Enterprise Resource Planning system designed to help manage:\n\n"
            "• Companies and staff\n"
            "• Financial transactions and reporting\n"
            "• Projects and tasks\n"
            "• Invoices and proposals\n"
            "• Attendance and leave management\n"
            "• Performance tracking\n"
            "• Internal messaging\n\n"
            "It's built to streamline business operations and provide insights through AI-powered analytics. "
            "What specific aspect would you like to know more about?"
        )
    return (
        f"I'd be happy to explain! However, I'm primarily designed to help with the {SYSTEM_NAME} system. "
        "I can assist with:\n\n"
        "• System features and how to use them\n"
        "• Your data (leave balance, invoices, financials, etc.)\n"
        "• Creating requests and managing tasks\n"
        "• General business and productivity topics\n\n"
        "Could you be more specific about what you'd like to know?"
    )


STAFF_CAPABILITIES = """**Your Tasks:**
• Create leave requests
• Send invoices to clients
• Send proposals/estimates
• Track your attendance
• View your own performance goals and reviews

**Your Financial Data:**
• View your financial reports
• Analyze your revenue and expenses
• Track your financial trends
• Generate your financial summaries

**Your Attendance & Leave:**
• Check your leave balances
• View your attendance records
• See your attendance patterns

**Your Performance:**
• View your performance metrics
• Track your goals and KPIs
• See your performance reviews"""

ADMIN_CAPABILITIES = """**Task Management:**
• Create leave requests
• Send invoices to clients
• Send proposals/estimates
• Track attendance

**Financial Analysis:**
• View financial reports (all data)
• Analyze revenue and expenses
• Track financial trends
• Generate financial summaries

**Performance Tracking:**
• View performance metrics (all staff)
• Track goals and KPIs
• Analyze team performance
• Generate performance reports

**Attendance & Leave:**
• Check leave balances
• View attendance records (all staff)
• Analyze attendance patterns

**AI Insights:**
• Generate financial insights
• Performance recommendations
• Risk assessments
• Attendance pattern analysis"""


def handle_capability(turn: Turn) -> str:
    is_staff = turn.context.is_staff
    privacy = (
        "\n**Privacy Note:** I can only access and discuss your own data for privacy and security reasons.\n"
        if is_staff else ""
    )
    return (
        f"I'm {ASSISTANT_NAME}! I can help you with:\n\n"
        "**System Information:**\n"
        f"• Answer questions about the {SYSTEM_NAME} system\n"
        "• Explain features and functionality\n"
        "• Guide you through processes\n\n"
        f"{STAFF_CAPABILITIES if is_staff else ADMIN_CAPABILITIES}\n\n"
        "**General Knowledge:**\n"
        "• Answer general questions\n"
        "• Provide information on various topics\n"
        "• Have friendly conversations\n"
        f"{privacy}\n"
        "What would you like help with?"
    )


def handle_leave(turn: Turn) -> str:
    text, ctx = turn.text, turn.context
    if _contains_any(text, "request", "apply", "take"):
        if not ctx.user_id:
            return "I need to know who you are to create a leave request. Please make sure you're logged in."
        match = re.search(r"(annual|sick|emergency)", text)
        if not match:
            return (
                "I can help you create a leave request! Please specify:\n"
                "• Leave type (annual, sick, or emergency)\n"
                "• Start date\n"
                "• End date\n"
                "• Reason (optional)\n\n"
                "Example: 'Request annual leave from 2024-12-20 to 2024-12-25 for vacation'"
            )
        leave_type = match.group(1)
        try:
            balance = get_leave_balance(turn.db, personal_user_id(ctx))
        except Exception as e:
            logger.warning("assistant_fetch_failed", thing="leave balance", error=str(e))
            return ("I can help you create a leave request. Please provide the start date, end date, "
                    "and leave type (annual, sick, or emergency).")
        return (
            f"I can help you create a {leave_type} leave request. "
            f"You have {balance[leave_type]['remaining']} days remaining for {leave_type} leave.\n\n"
            "To create the request, I'll need:\n"
            "• Start date (YYYY-MM-DD format)\n"
            "• End date (YYYY-MM-DD format)\n"
            "• Reason (optional)\n\n"
            "Please provide these details, or you can create it manually in the Leaves section."
        )

    if _contains_any(text, "balance", "remaining", "how many days"):
        if not ctx.user_id:
            return "I need to know who you are to check your leave balance. Please make sure you're logged in."
        try:
            balance = get_leave_balance(turn.db, personal_user_id(ctx))
        except Exception as e:
            return _apology("leave balance", e)
        lines = [
            f"• {leave_type.capitalize()} Leave: {balance[leave_type]['remaining']} / "
            f"{balance[leave_type]['total']} days remaining"
            for leave_type in LEAVE_TYPES
        ]
        return "Your Leave Balance:\n" + "\n".join(lines)

    return (
        "I can help you with leave requests and balances. You can:\n"
        "• Check your leave balance\n"
        "• Create leave requests\n"
        "• View leave history\n\n"
        "What would you like to do?"
    )


def handle_invoice(turn: Turn) -> str:
    text, ctx = turn.text, turn.context
    if _contains_any(text, "send", "create", "generate"):
        if not ctx.user_id or not ctx.company_id:
            return ("I need your user and company information to create an invoice. "
                    "Please make sure you're logged in and assigned to a company.")
        return (
            "I can help you create and send invoices! To create an invoice, I'll need:\n"
            "• Client name\n"
            "• Client email\n"
            "• Invoice items (description, quantity, price)\n"
            "• Due date (optional)\n\n"
            "You can also create invoices manually in the Invoices section. "
            "Would you like me to guide you through the process?"
        )

    if _contains_any(text, "list", "show", "view"):
        if not ctx.user_id:
            return "I need to know who you are to retrieve your invoices. Please make sure you're logged in."
        try:
            scope = scoped_filters(ctx)
            counts = status_counts(get_invoices(turn.db, company_id=scope.get("company_id"),
                                                created_by=scope.get("user_id")))
        except Exception as e:
            return _apology("invoices", e)
        return (
            "Your Invoice Summary:\n"
            f"• Total Invoices: {counts['total']}\n"
            f"• Paid: {counts['paid']}\n"
            f"• Pending: {counts['pending']}\n"
            f"• Overdue: {counts['overdue']}\n\n"
            "You can view all invoices in the Invoices section."
        )

    return (
        "I can help you with invoices. You can:\n"
        "• Create new invoices\n"
        "• Send invoices to clients\n"
        "• View invoice status\n"
        "• Track payments\n\n"
        "What would you like to do?"
    )


def handle_proposal(turn: Turn) -> str:
    ctx = turn.context
    if _contains_any(turn.text, "send", "create"):
        if not ctx.user_id or not ctx.company_id:
            return ("I need your user and company information to create a proposal. "
                    "Please make sure you're logged in and assigned to a company.")
        return (
            "I can help you create and send proposals! To create a proposal, I'll need:\n"
            "• Client name\n"
            "• Client email\n"
            "• Proposal items (description, quantity, price)\n"
            "• Valid until date (optional)\n\n"
            "You can also create proposals manually in the Proposals section."
        )
    return (
        "I can help you with proposals/estimates. You can:\n"
        "• Create new proposals\n"
        "• Send proposals to clients\n"
        "• Track proposal status\n"
        "• Create proposal versions\n\n"
        "What would you like to do?"
    )


def handle_financial(turn: Turn) -> str:
    text, ctx = turn.text, turn.context
    if _contains_any(text, "report", "summary", "overview"):
        if not ctx.user_id:
            return "I need to know who you are to retrieve your financial data. Please make sure you're logged in."
        try:
            summary = get_financial_summary(turn.db, **scoped_filters(ctx))
        except Exception as e:
            return _apology("financial summary", e)
        verdict = ("You're profitable!" if summary["net_profit"] > 0
                   else "Expenses exceed income. Review your spending.")
        return (
            "Your Financial Summary:\n"
            f"• Total Income: {_money(summary['total_income'])}\n"
            f"• Total Expenses: {_money(summary['total_expenses'])}\n"
            f"• Net Profit: {_money(summary['net_profit'])}\n"
            f"• Income Transactions: {summary['income_count']}\n"
            f"• Expense Transactions: {summary['expense_count']}\n\n"
            f"{verdict}"
        )
    return (
        "I can help you with financial analysis. You can:\n"
        "• View financial reports\n"
        "• Analyze revenue and expenses\n"
        "• Track financial trends\n"
        "• Generate financial summaries\n\n"
        "What specific financial information would you like?"
    )


def handle_performance(turn: Turn) -> str:
    # Always the caller's own goals, admins included.
    if not turn.context.user_id:
        return "I need to know who you are to check your performance. Please make sure you're logged in."
    try:
        user_id = personal_user_id(turn.context)
        goals = get_goals(turn.db, user_id=user_id)
        reviews = get_performance_reviews(turn.db, user_id=user_id)
    except Exception as e:
        return _apology("performance data", e)
    active = sum(1 for g in goals if g.status in ("in-progress", "not-started"))
    completed = sum(1 for g in goals if g.status == "completed")
    return (
        "Your Performance Overview:\n"
        f"• Active Goals: {active}\n"
        f"• Completed Goals: {completed}\n"
        f"• Total Reviews: {len(reviews)}\n\n"
        "You can view detailed performance data in the Performance section."
    )


def _clock_time(value) -> str:
    return to_local(value).strftime("%I:%M:%S %p")


def handle_attendance(turn: Turn) -> str:
    if not turn.context.user_id:
        return "I need to know who you are to check attendance. Please make sure you're logged in."
    try:
        record = get_today_attendance(turn.db, personal_user_id(turn.context))
    except Exception as e:
        return _apology("attendance data", e)
    if record is None:
        return ("You haven't clocked in today. You can clock in from the Attendance section "
                "or the quick action in the top bar.")
    clock_in = _clock_time(record.clock_in) if record.clock_in else "Not clocked in"
    clock_out = _clock_time(record.clock_out) if record.clock_out else "Not clocked out"
    return (
        "Today's Attendance:\n"
        f"• Clock In: {clock_in}\n"
        f"• Clock Out: {clock_out}\n"
        f"• Total Hours: {record.total_hours or 0:.2f} hours\n\n"
        "You can clock in/out from the Attendance section or the quick action in the top bar."
    )


def handle_how_to(turn: Turn) -> str:
    text = turn.text
    if "invoice" in text:
        return ("To create an invoice:\n1. Go to the Invoices section\n2. Click 'Create Invoice'\n"
                "3. Fill in client details\n4. Add invoice items\n5. Review and send\n\n"
                "I can also help you create invoices if you provide the details!")
    if "leave" in text:
        return ("To request leave:\n1. Go to the Leaves section\n2. Click 'Request Leave'\n"
                "3. Select leave type (annual, sick, emergency)\n4. Choose start and end dates\n"
                "5. Add reason (optional)\n6. Submit for approval\n\n"
                "I can also help you create leave requests!")
    if "proposal" in text:
        return ("To create a proposal:\n1. Go to the Proposals section\n2. Click 'Create Proposal'\n"
                "3. Fill in client details\n4. Add proposal items\n5. Set valid until date\n"
                "6. Send to client\n\nI can also help you create proposals!")
    return f"I can explain how to use various features of the {SYSTEM_NAME} system. What feature would you like to learn about?"


INTENTS: Tuple[Intent, ...] = (
    Intent("greeting", is_greeting, handle_greeting),
    Intent("small_talk", is_small_talk, handle_small_talk),
    Intent("thanks", is_thanks, handle_thanks),
    Intent("farewell", is_farewell, handle_farewell),
    Intent("explain", is_explain, handle_explain),
    Intent("capability", is_capability, handle_capability),
    Intent("leave", is_leave, handle_leave),
    Intent("invoice", is_invoice, handle_invoice),
    Intent("proposal", is_proposal, handle_proposal),
    Intent("financial", is_financial, handle_financial),
    Intent("performance", is_performance, handle_performance),
    Intent("attendance", is_attendance, handle_attendance),
    Intent("how_to", is_how_to, handle_how_to),
)


def match_intent(text: str) -> Optional[Intent]:
    for intent in INTENTS:
        if intent.predicate(text):
            return intent
    return None


# Completion fallback

COMPLETION_FAILED_REPLY = (
    "I apologize, but I'm having trouble processing your request right now. Please try asking me:\n\n"
    "• About your leave balance, invoices, or financial data\n"
    f"• How to use specific features of the {SYSTEM_NAME} system\n"
    "• To explain something about the system\n\n"
    "Or try rephrasing your question. I'm here to help!"
)

GUIDANCE_REPLY = (
    "I'd love to help you, but I need more specific information about what you're looking for. "
    "Here's what I can assist with:\n\n"
    "**Your Data:**\n"
    "• Check your leave balance\n"
    "• View your invoices\n"
    "• See your financial summary\n"
    "• Track your attendance\n"
    "• View your performance goals\n\n"
    "**System Help:**\n"
    "• How to create invoices\n"
    "• How to request leave\n"
    "• How to create proposals\n"
    "• System features and functionality\n\n"
    "Try asking something like:\n"
    "• \"What's my leave balance?\"\n"
    "• \"Show me my invoices\"\n"
    "• \"How do I create an invoice?\"\n"
    "• \"What can you do?\"\n\n"
    "What would you like help with?"
)

STAFF_PROMPT = f"""You are {ASSISTANT_NAME}, an advanced and intelligent AI assistant for the {SYSTEM_NAME} system. You are designed to be helpful, knowledgeable, and context-aware.

CRITICAL SECURITY RULES - YOU MUST FOLLOW THESE STRICTLY:
1. You are chatting with a STAFF member (not an admin)
2. You can ONLY access and discuss the CURRENT USER's own data
3. NEVER reveal, mention, or reference:
   - Other staff members' information (names, data, performance, etc.)
   - Admin information or admin-specific data
   - Company-wide statistics that include other staff
   - Any data that belongs to other users
4. When discussing data, ALWAYS refer to it as "your data", "your information", etc.
5. If asked about other staff or admin data, politely decline: "I can only access your own data for privacy and security reasons."

CAPABILITIES:
- Answer questions about {SYSTEM_NAME} system features and how to use them
- Help with the CURRENT USER's own data (their leave, invoices, financials, performance, attendance, etc.)
- Provide intelligent analysis and insights based on user's data
- Answer general knowledge questions when appropriate
- Offer business and productivity advice
- Provide step-by-step guidance for complex tasks

IMPORTANT INSTRUCTIONS:
- Be concise, clear, and helpful while being conversational
- Never make up specific data or numbers - only reference actual system data when explicitly queried
- Always prioritize being helpful while maintaining strict data privacy
- Respond naturally without repeating the user's question back to them
- Use the provided context data to give personalized responses"""

ADMIN_PROMPT = f"""You are {ASSISTANT_NAME}, an advanced and intelligent AI assistant for the {SYSTEM_NAME} system. You are designed to be helpful, knowledgeable, and provide comprehensive business insights.

You are chatting with an ADMIN user who has access to all system data and administrative functions.

CAPABILITIES:
- Answer questions about {SYSTEM_NAME} system features, data, and tasks
- Provide system-wide analytics and insights
- Help with administrative tasks and decision-making
- Analyze business trends and patterns
- Answer general knowledge questions
- Offer strategic business and productivity advice
- Provide comprehensive reports and summaries

IMPORTANT INSTRUCTIONS:
- Be concise, clear, and helpful while being professional
- When asked about system-specific data, guide users on how to access it or provide insights
- Respond naturally without repeating the user's question back to them
- Use the provided context data to give personalized responses
- Be proactive in suggesting improvements and optimizations"""


def user_context_snippets(db: Session, context: SystemContext) -> List[str]:
    """Live data lines for the system prompt, fetched with the caller's scope. Failures are skipped."""
    if not context.user_id:
        return []
    parts: List[str] = []
    try:
        b = get_leave_balance(db, personal_user_id(context))
        parts.append(
            f"Leave Balance: Annual {b['annual']['remaining']}/{b['annual']['total']}, "
            f"Sick {b['sick']['remaining']}/{b['sick']['total']}, "
            f"Emergency {b['emergency']['remaining']}/{b['emergency']['total']}"
        )
    except Exception as e:
        logger.warning("assistant_context_failed", part="leave_balance", error=str(e))
    try:
        s = get_financial_summary(db, **scoped_filters(context))
        parts.append(
            f"Financial Summary: Income {_money(s['total_income'])}, "
            f"Expenses {_money(s['total_expenses'])}, Profit {_money(s['net_profit'])}"
        )
    except Exception as e:
        logger.warning("assistant_context_failed", part="financial_summary", error=str(e))
    try:
        record = get_today_attendance(db, personal_user_id(context))
        if record is not None:
            state = "out" if record.clock_out else "in"
            at = record.clock_out or record.clock_in
            parts.append(f"Today's Attendance: Clocked {state} at {to_local(at).isoformat()}")
    except Exception as e:
        logger.warning("assistant_context_failed", part="attendance", error=str(e))
    return parts


def build_completion_messages(db: Session, message: str, history: List[ChatMessage],
                              context: SystemContext) -> List[dict]:
    prompt = STAFF_PROMPT if context.is_staff else ADMIN_PROMPT
    snippets = user_context_snippets(db, context)
    if snippets:
        prompt += (
            "\n\nCURRENT USER CONTEXT:\n" + "\n".join(snippets)
            + "\n\nUse this context to provide more personalized and accurate responses when relevant."
        )
    messages = [{"role": "system", "content": prompt}]
    for msg in history[-HISTORY_LIMIT:]:
        messages.append({"role": "user" if msg.role == "user" else "assistant", "content": msg.content})
    messages.append({"role": "user", "content": message})
    return messages


def _complete(turn: Turn) -> str:
    if not is_configured():
        return GUIDANCE_REPLY
    try:
        client = CompletionClient()
        return client.complete(build_completion_messages(turn.db, turn.message, turn.history, turn.context))
    except CompletionError as e:
        logger.warning("completion_failed", error=str(e))
        return COMPLETION_FAILED_REPLY


def chat(db: Session, message: str, history: Optional[List[ChatMessage]] = None,
         context: Optional[SystemContext] = None) -> str:
    """
    Reply to one chat message.

    Args:
        db: Database session
        message: User text
        history: Prior messages, most recent last
        context: Caller scope (defaults to an anonymous staff context)

    Returns:
        The reply text. Errors are turned into a reply, never raised.
    """
    turn = Turn(
        db=db,
        text=(message or "").lower().strip(),
        message=message,
        context=context or SystemContext(),
        history=list(history or []),
    )
    try:
        intent = match_intent(turn.text)
        if intent is None:
            return _complete(turn)
        logger.debug("assistant_intent", intent=intent.name)
        return intent.handler(turn)
    except Exception as e:
        logger.exception("assistant_chat_failed")
        return f"I encountered an error: {str(e) or 'Please try again later.'}"
