import logging

from aiogram import F, Router
from aiogram.types import Message

from finflow.services.chat_service import USAGE_HINT, handle_message

logger = logging.getLogger(__name__)
router = Router()


@router.message(F.text)
async def handle_text(message: Message):
    reply = await handle_message(message.chat.id, message.text)
    logger.debug("Replying", extra={"chat_id": message.chat.id, "handler": "text"})
    await message.answer(reply)


@router.message()
async def handle_other(message: Message):
    await message.answer(USAGE_HINT)
