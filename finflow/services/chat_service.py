import logging
from datetime import UTC, datetime

from finflow.commands import (
    AddIntent,
    BalanceQuery,
    HelpRequest,
    Intent,
    RecentQuery,
    UnrecognizedCommand,
    command_name,
    parse_message,
)
from finflow.currency import format_amount
from finflow.db.models import Transaction, TransactionKind
from finflow.errors import StoreUnavailable, ValidationError
from finflow.services.analytics_service import current_balance
from finflow.services.binding_service import get_binding, redeem_link_token, unbind_chat
from finflow.services.transaction_service import append_transaction, list_by_owner, normalize

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "Welcome to FinFlow Bot! 👋\n\n"
    "To add a transaction, simply send a message in this format:\n\n"
    "Category Amount\n\n"
    "For example:\n"
    "Food 200\n"
    "Transport 50.5\n"
    "Rent 1500\n\n"
    "Type /help for all commands."
)

HELP_TEXT = (
    "Adding transactions:\n"
    "  Food 200 — quick expense\n"
    "  /expense <amount> <category> [description]\n"
    "  /income <amount> <category> [description]\n"
    "  /add <income|expense> <amount> <category> [description]\n\n"
    "Reports:\n"
    "  /balance — current balance\n"
    "  /recent — last 5 transactions\n\n"
    "Account:\n"
    "  /start <code> — link this chat to your account\n"
    "  /unlink — disconnect this chat"
)

USAGE_HINT = "Please use the format: Category Amount\n\nExamples:\nFood 200\nTransport 50.5"

NOT_LINKED_TEXT = (
    "This chat isn't linked to a FinFlow account yet.\n"
    "Open Settings → Telegram in the dashboard to get a link code, then send:\n"
    "/start <code>"
)

STORE_ERROR_TEXT = "❌ Something went wrong saving your data. Please try again."


def format_transaction_added(transaction: Transaction) -> str:
    lines = [
        "✅ Transaction added!",
        f"Type: {str(transaction.kind).title()}",
        f"Category: {transaction.category}",
        f"Amount: {format_amount(transaction.magnitude)}",
    ]
    if transaction.description:
        lines.append(f"Description: {transaction.description}")
    return "\n".join(lines)


def format_recent(transactions: list[Transaction]) -> str:
    if not transactions:
        return "No transactions yet."
    lines = [f"🧾 Last {len(transactions)} transaction(s):\n"]
    for t in transactions:
        sign = "+" if t.kind == TransactionKind.INCOME else "-"
        line = f"• {t.occurred_at.date().isoformat()} {t.category}: {sign}{format_amount(t.magnitude)}"
        if t.description:
            line += f" — {t.description}"
        lines.append(line)
    return "\n".join(lines)


async def _add(owner_id: str, intent: AddIntent, now: datetime) -> str:
    transaction = normalize(owner_id, intent, now=now)
    if isinstance(transaction, ValidationError):
        return f"❌ {transaction.message}"
    transaction.id = await append_transaction(transaction)
    logger.info(
        "Transaction added from chat",
        extra={"owner_id": owner_id, "transaction_id": transaction.id, "intent": "add"},
    )
    return format_transaction_added(transaction)


async def reply_to_intent(owner_id: str, intent: Intent | ValidationError, now: datetime) -> str:
    if isinstance(intent, ValidationError):
        return f"❌ {intent.message}"
    if isinstance(intent, AddIntent):
        return await _add(owner_id, intent, now)
    if isinstance(intent, BalanceQuery):
        balance = current_balance(await list_by_owner(owner_id))
        return f"💰 Current balance: {format_amount(balance)}"
    if isinstance(intent, RecentQuery):
        return format_recent(await list_by_owner(owner_id, limit=intent.limit))
    if isinstance(intent, HelpRequest):
        return HELP_TEXT
    if isinstance(intent, UnrecognizedCommand):
        return USAGE_HINT
    raise TypeError(f"Unhandled intent: {intent!r}")


async def _start(chat_id: int, code: str | None) -> str:
    if not code:
        return WELCOME_TEXT
    binding = await redeem_link_token(chat_id, code)
    if binding is None:
        return "That link code is invalid or has already been used."
    return "🔗 This chat is now linked to your FinFlow account.\n\n" + WELCOME_TEXT


async def handle_message(chat_id: int, text: str, now: datetime | None = None) -> str:
    """Produce the reply for one inbound chat line.

    Store failures never escape: they become a "please try again" reply.
    """
    now = now or datetime.now(UTC)
    text = (text or "").strip()
    parts = text.split(maxsplit=1)
    command = command_name(parts[0]) if parts else ""

    try:
        if command == "/start":
            return await _start(chat_id, parts[1].strip() if len(parts) > 1 else None)
        if command == "/unlink":
            if await unbind_chat(chat_id):
                return "This chat has been unlinked."
            return NOT_LINKED_TEXT
        if command == "/help":
            return HELP_TEXT

        binding = await get_binding(chat_id)
        if binding is None:
            return NOT_LINKED_TEXT
        intent = parse_message(text)
        return await reply_to_intent(binding.owner_id, intent, now)
    except StoreUnavailable:
        logger.warning("Store unavailable while handling message", exc_info=True, extra={"chat_id": chat_id})
        return STORE_ERROR_TEXT
