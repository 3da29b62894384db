"""Parsing of raw chat lines into intents.

Every function here is pure. Bad input comes back as a ``ValidationError``
value instead of being raised, so the reply pipeline can render it directly.
"""

import math
import re
from dataclasses import dataclass

from finflow.db.models import TransactionKind
from finflow.errors import ValidationError

RECENT_LIMIT = 5

_AMOUNT = re.compile(r"\d+(\.\d+)?", re.ASCII)
_SHORTHAND = re.compile(r"^([A-Za-z]+)\s+(\d+(\.\d+)?)$")


@dataclass(frozen=True, slots=True)
class AddIntent:
    kind: TransactionKind
    amount: float
    category: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class BalanceQuery:
    pass


@dataclass(frozen=True, slots=True)
class RecentQuery:
    limit: int = RECENT_LIMIT


@dataclass(frozen=True, slots=True)
class HelpRequest:
    pass


@dataclass(frozen=True, slots=True)
class UnrecognizedCommand:
    original_text: str


Intent = AddIntent | BalanceQuery | RecentQuery | HelpRequest | UnrecognizedCommand


def parse_amount(raw: str | None) -> float | ValidationError:
    # Plain decimals only: float() would also take "1_000", "1e3" or "nan".
    if raw is None or not _AMOUNT.fullmatch(raw):
        return ValidationError("Invalid amount")
    amount = float(raw)
    if not math.isfinite(amount) or amount <= 0:
        return ValidationError("Invalid amount")
    return amount


def parse_kind(raw: str | None) -> TransactionKind | ValidationError:
    if not raw:
        return ValidationError("Missing type: expected income or expense")
    try:
        return TransactionKind(raw.lower())
    except ValueError:
        return ValidationError(f"Invalid type '{raw}': expected income or expense")


def _add_intent(kind: TransactionKind, args: list[str]) -> AddIntent | ValidationError:
    # args: amount category description...
    amount = parse_amount(args[0] if args else None)
    if isinstance(amount, ValidationError):
        return amount
    if len(args) < 2:
        return ValidationError("Missing category")
    return AddIntent(kind=kind, amount=amount, category=args[1], description=" ".join(args[2:]))


def command_name(token: str) -> str:
    # Telegram appends @botname to commands sent in group chats.
    return token.split("@", 1)[0].lower()


def parse_command(text: str) -> Intent | ValidationError:
    tokens = text.split()
    if not tokens:
        return UnrecognizedCommand(text)

    command, args = command_name(tokens[0]), tokens[1:]
    if command == "/add":
        kind = parse_kind(args[0] if args else None)
        if isinstance(kind, ValidationError):
            return kind
        return _add_intent(kind, args[1:])
    if command == "/expense":
        return _add_intent(TransactionKind.EXPENSE, args)
    if command == "/income":
        return _add_intent(TransactionKind.INCOME, args)
    if command == "/balance":
        return BalanceQuery()
    if command == "/recent":
        return RecentQuery()
    if command == "/help":
        return HelpRequest()
    return UnrecognizedCommand(text)


def parse_shorthand(text: str) -> AddIntent | UnrecognizedCommand:
    """Match ``<Word> <amount>`` as an implicit expense, e.g. ``Food 200``."""
    match = _SHORTHAND.match(text.strip())
    if not match:
        return UnrecognizedCommand(text)
    return AddIntent(
        kind=TransactionKind.EXPENSE,
        amount=float(match.group(2)),
        category=match.group(1),
    )


def parse_message(text: str) -> Intent | ValidationError:
    if text.lstrip().startswith("/"):
        return parse_command(text)
    return parse_shorthand(text)
