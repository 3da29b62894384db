from finflow.db.database import connection
from finflow.db.models import TransactionKind

DEFAULT_CATEGORIES: dict[TransactionKind, list[str]] = {
    TransactionKind.INCOME: ["Salary", "Freelance", "Investments", "Gifts", "Other"],
    TransactionKind.EXPENSE: [
        "Food",
        "Housing",
        "Transport",
        "Entertainment",
        "Utilities",
        "Health",
        "Education",
        "Shopping",
        "Other",
    ],
}


async def get_used_categories(owner_id: str, kind: TransactionKind) -> list[str]:
    async with connection() as db:
        cursor = await db.execute(
            "SELECT DISTINCT category FROM transactions WHERE owner_id = ? AND kind = ? ORDER BY category",
            (owner_id, str(kind)),
        )
        rows = await cursor.fetchall()
    return [row[0] for row in rows]


async def get_categories(owner_id: str, kind: TransactionKind | str) -> list[str]:
    """Form suggestions: the defaults for ``kind``, then the owner's own categories."""
    kind = TransactionKind(kind)
    defaults = DEFAULT_CATEGORIES[kind]
    used = await get_used_categories(owner_id, kind)
    return defaults + [c for c in used if c not in defaults]
