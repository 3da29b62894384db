import logging
import math
from datetime import UTC, date, datetime

from finflow.commands import AddIntent, parse_amount, parse_kind
from finflow.db.database import connection
from finflow.db.models import Transaction, TransactionKind
from finflow.errors import AuthorizationError, NotFound, ValidationError
from finflow.windows import as_utc

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"kind", "amount", "category", "description", "occurred_at"})

NOT_FOUND_MESSAGE = "Transaction not found"
FORBIDDEN_MESSAGE = "This transaction could not be changed"


def signed_amount(kind: TransactionKind, amount: float) -> float:
    return -abs(amount) if kind == TransactionKind.EXPENSE else abs(amount)


def normalize(
    owner_id: str,
    intent: AddIntent,
    occurred_at: datetime | date | None = None,
    now: datetime | None = None,
) -> Transaction | ValidationError:
    """Turn an add request from any entry surface into a storable transaction.

    ``intent.amount`` is a magnitude; the stored amount is signed by kind.
    """
    amount = intent.amount
    if not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount <= 0:
        return ValidationError("Invalid amount")
    category = (intent.category or "").strip()
    if not category:
        return ValidationError("Missing category")

    now = as_utc(now) if now else datetime.now(UTC)
    return Transaction(
        id=None,
        owner_id=owner_id,
        kind=TransactionKind(intent.kind),
        amount=signed_amount(intent.kind, float(amount)),
        category=category,
        description=(intent.description or "").strip(),
        occurred_at=as_utc(occurred_at) if occurred_at else now,
        created_at=now,
        updated_at=now,
    )


def _ts(moment: datetime) -> str:
    return as_utc(moment).isoformat(timespec="microseconds")


def _row_to_transaction(row) -> Transaction:
    return Transaction(
        id=row["id"],
        owner_id=row["owner_id"],
        kind=TransactionKind(row["kind"]),
        amount=row["amount"],
        category=row["category"],
        description=row["description"],
        occurred_at=datetime.fromisoformat(row["occurred_at"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


async def append_transaction(transaction: Transaction) -> int:
    now = datetime.now(UTC)
    created_at = transaction.created_at or now
    updated_at = transaction.updated_at or created_at
    async with connection() as db:
        cursor = await db.execute(
            """INSERT INTO transactions
            (owner_id, kind, amount, category, description, occurred_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                transaction.owner_id,
                str(transaction.kind),
                transaction.amount,
                transaction.category,
                transaction.description,
                _ts(transaction.occurred_at),
                _ts(created_at),
                _ts(updated_at),
            ),
        )
        await db.commit()
    assert cursor.lastrowid is not None
    return cursor.lastrowid


async def list_by_owner(owner_id: str, limit: int | None = None) -> list[Transaction]:
    query = """SELECT * FROM transactions WHERE owner_id = ?
        ORDER BY occurred_at DESC, created_at DESC, id ASC"""
    params: list = [owner_id]
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    async with connection() as db:
        cursor = await db.execute(query, params)
        rows = await cursor.fetchall()
    return [_row_to_transaction(row) for row in rows]


async def get_by_id(owner_id: str, transaction_id: int) -> Transaction:
    async with connection() as db:
        cursor = await db.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,))
        row = await cursor.fetchone()
    if row is None:
        raise NotFound(f"Transaction {transaction_id} not found")
    if row["owner_id"] != owner_id:
        raise AuthorizationError("Not allowed")
    return _row_to_transaction(row)


async def update_by_id(owner_id: str, transaction_id: int, /, **fields) -> Transaction | ValidationError:
    """Apply a partial update and refresh ``updated_at``.

    Fields outside ``UPDATABLE_FIELDS`` (``owner_id`` included) are dropped.
    Values are checked before anything is written; a bad value comes back as
    a ``ValidationError``. The stored sign always follows the resulting kind,
    so changing only the kind flips the sign of the existing amount.
    """
    fields = _validate_changes({k: v for k, v in fields.items() if k in UPDATABLE_FIELDS})
    if isinstance(fields, ValidationError):
        return fields
    current = await get_by_id(owner_id, transaction_id)

    kind = TransactionKind(fields.get("kind", current.kind))
    if "kind" in fields or "amount" in fields:
        fields["kind"] = str(kind)
        fields["amount"] = signed_amount(kind, fields.get("amount", current.amount))
    if "occurred_at" in fields:
        fields["occurred_at"] = _ts(fields["occurred_at"])
    fields["updated_at"] = _ts(datetime.now(UTC))

    set_clause = ", ".join(f"{k} = ?" for k in fields)
    values = [*fields.values(), transaction_id]
    async with connection() as db:
        await db.execute(f"UPDATE transactions SET {set_clause} WHERE id = ?", values)
        await db.commit()
    return await get_by_id(owner_id, transaction_id)


async def delete_by_id(owner_id: str, transaction_id: int) -> None:
    await get_by_id(owner_id, transaction_id)
    async with connection() as db:
        await db.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        await db.commit()


async def create_transaction(
    owner_id: str,
    kind: str,
    amount: float | str,
    category: str,
    description: str = "",
    occurred_at: datetime | date | None = None,
) -> Transaction | ValidationError:
    """Entry point for the structured form. Persists on success."""
    parsed_kind = parse_kind(kind)
    if isinstance(parsed_kind, ValidationError):
        return parsed_kind
    if isinstance(amount, str):
        amount = parse_amount(amount)
        if isinstance(amount, ValidationError):
            return amount

    intent = AddIntent(kind=parsed_kind, amount=amount, category=category, description=description or "")
    transaction = normalize(owner_id, intent, occurred_at=occurred_at)
    if isinstance(transaction, ValidationError):
        return transaction
    transaction.id = await append_transaction(transaction)
    logger.info("Transaction created", extra={"owner_id": owner_id, "transaction_id": transaction.id})
    return transaction


async def list_transactions(
    owner_id: str,
    kind: str | None = None,
    category: str | None = None,
    search: str | None = None,
) -> list[Transaction]:
    """Owner's transactions, newest first, narrowed by the listing filters.

    ``search`` matches description or category, ignoring case.
    """
    transactions = await list_by_owner(owner_id)
    if kind:
        transactions = [t for t in transactions if t.kind == kind.strip().lower()]
    if category:
        transactions = [t for t in transactions if t.category == category]
    needle = (search or "").strip().casefold()
    if needle:
        transactions = [
            t for t in transactions if needle in t.description.casefold() or needle in t.category.casefold()
        ]
    return transactions


def _check_amount(amount) -> float | ValidationError:
    if isinstance(amount, str):
        return parse_amount(amount)
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return ValidationError("Invalid amount")
    if not math.isfinite(amount) or amount <= 0:
        return ValidationError("Invalid amount")
    return float(amount)


def _validate_changes(changes: dict) -> dict | ValidationError:
    cleaned: dict = {}
    if "kind" in changes:
        kind = parse_kind(changes["kind"])
        if isinstance(kind, ValidationError):
            return kind
        cleaned["kind"] = kind
    if "amount" in changes:
        amount = _check_amount(changes["amount"])
        if isinstance(amount, ValidationError):
            return amount
        cleaned["amount"] = amount
    if "category" in changes:
        category = (changes["category"] or "").strip()
        if not category:
            return ValidationError("Missing category")
        cleaned["category"] = category
    if "description" in changes:
        cleaned["description"] = (changes["description"] or "").strip()
    if "occurred_at" in changes:
        if changes["occurred_at"] is None:
            return ValidationError("Missing date")
        cleaned["occurred_at"] = as_utc(changes["occurred_at"])
    return cleaned


async def edit_transaction(owner_id: str, transaction_id: int, /, **changes) -> Transaction | ValidationError:
    """Form-facing edit. Missing or foreign records come back as a message, never as an exception."""
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    if not changes:
        return ValidationError("Nothing to update")
    try:
        updated = await update_by_id(owner_id, transaction_id, **changes)
    except NotFound:
        return ValidationError(NOT_FOUND_MESSAGE)
    except AuthorizationError:
        logger.warning("Edit refused", extra={"owner_id": owner_id, "transaction_id": transaction_id})
        return ValidationError(FORBIDDEN_MESSAGE)
    if isinstance(updated, Transaction):
        logger.info("Transaction updated", extra={"owner_id": owner_id, "transaction_id": transaction_id})
    return updated


async def remove_transaction(owner_id: str, transaction_id: int) -> ValidationError | None:
    try:
        await delete_by_id(owner_id, transaction_id)
    except NotFound:
        return ValidationError(NOT_FOUND_MESSAGE)
    except AuthorizationError:
        logger.warning("Delete refused", extra={"owner_id": owner_id, "transaction_id": transaction_id})
        return ValidationError(FORBIDDEN_MESSAGE)
    logger.info("Transaction deleted", extra={"owner_id": owner_id, "transaction_id": transaction_id})
    return None
