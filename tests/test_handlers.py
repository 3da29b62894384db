from unittest.mock import AsyncMock, MagicMock

from aiogram.types import Message

from finflow.handlers.common import handle_other, handle_text
from finflow.main import error_boundary_middleware
from finflow.services.binding_service import bind_chat
from finflow.services.chat_service import USAGE_HINT
from finflow.services.transaction_service import list_by_owner


def _message(text: str | None, chat_id: int = 321) -> MagicMock:
    msg = MagicMock()
    msg.chat.id = chat_id
    msg.text = text
    msg.answer = AsyncMock()
    return msg


async def test_text_message_is_recorded_and_answered():
    await bind_chat(321, "user-1")
    msg = _message("Transport 50.5")

    await handle_text(msg)

    msg.answer.assert_awaited_once()
    reply = msg.answer.call_args[0][0]
    assert "Category: Transport" in reply
    rows = await list_by_owner("user-1")
    assert rows[0].amount == -50.5


async def test_non_text_message_gets_usage_hint():
    msg = _message(None)
    await handle_other(msg)
    msg.answer.assert_awaited_once_with(USAGE_HINT)


async def test_error_boundary_replies_on_failure():
    handler = AsyncMock(side_effect=RuntimeError("boom"))
    msg = _message("/balance")
    msg.__class__ = Message

    await error_boundary_middleware(handler, msg, {})

    msg.answer.assert_awaited_once_with("Something went wrong. Please try again.")


async def test_error_boundary_passes_result_through():
    handler = AsyncMock(return_value="ok")
    assert await error_boundary_middleware(handler, _message("/help"), {}) == "ok"
