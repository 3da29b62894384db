from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TransactionKind(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(slots=True)
class Transaction:
    id: int | None
    owner_id: str
    kind: TransactionKind
    amount: float
    category: str
    description: str
    occurred_at: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def magnitude(self) -> float:
        return abs(self.amount)


@dataclass(slots=True)
class ChatBinding:
    external_chat_id: int
    owner_id: str
    created_at: datetime | None = None
