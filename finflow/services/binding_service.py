import logging
import secrets
from datetime import UTC, datetime

from finflow.db.database import connection
from finflow.db.models import ChatBinding

logger = logging.getLogger(__name__)


async def issue_link_token(owner_id: str) -> str:
    """Create a one-time code the owner sends to the bot as ``/start <code>``."""
    token = secrets.token_urlsafe(16)
    async with connection() as db:
        await db.execute(
            "INSERT INTO link_tokens (token, owner_id, created_at) VALUES (?, ?, ?)",
            (token, owner_id, datetime.now(UTC).isoformat()),
        )
        await db.commit()
    return token


async def bind_chat(external_chat_id: int, owner_id: str) -> ChatBinding:
    """Link a chat to an owner, replacing any previous binding of that chat."""
    now = datetime.now(UTC)
    async with connection() as db:
        await db.execute(
            "INSERT OR REPLACE INTO chat_bindings (external_chat_id, owner_id, created_at) VALUES (?, ?, ?)",
            (external_chat_id, owner_id, now.isoformat()),
        )
        await db.commit()
    logger.info("Chat bound", extra={"chat_id": external_chat_id, "owner_id": owner_id})
    return ChatBinding(external_chat_id=external_chat_id, owner_id=owner_id, created_at=now)


async def redeem_link_token(external_chat_id: int, token: str) -> ChatBinding | None:
    async with connection() as db:
        cursor = await db.execute("SELECT owner_id FROM link_tokens WHERE token = ?", (token,))
        row = await cursor.fetchone()
        if not row:
            return None
        cursor = await db.execute("DELETE FROM link_tokens WHERE token = ?", (token,))
        await db.commit()
    if cursor.rowcount == 0:
        # already redeemed by another chat
        return None
    return await bind_chat(external_chat_id, row["owner_id"])


async def get_binding(external_chat_id: int) -> ChatBinding | None:
    async with connection() as db:
        cursor = await db.execute(
            "SELECT * FROM chat_bindings WHERE external_chat_id = ?",
            (external_chat_id,),
        )
        row = await cursor.fetchone()
    if not row:
        return None
    return ChatBinding(
        external_chat_id=row["external_chat_id"],
        owner_id=row["owner_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


async def unbind_chat(external_chat_id: int) -> bool:
    async with connection() as db:
        cursor = await db.execute(
            "DELETE FROM chat_bindings WHERE external_chat_id = ?",
            (external_chat_id,),
        )
        await db.commit()
    return cursor.rowcount > 0
