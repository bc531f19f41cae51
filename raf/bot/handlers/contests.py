from aiogram import Router, F
from aiogram.enums import ChatType
from aiogram.types import Message, CallbackQuery

from raf.bot.contest_fsm import ContestFSM
from raf.bot.filters.owner import OwnerFilter

# Роутер для нажатий кнопок и текстовых сообщений владельцев каналов
router = Router(name="contests")


@router.callback_query()
async def contest_callback(callback: CallbackQuery, fsm: ContestFSM):
    """Все нажатия inline-кнопок обрабатываются ContestFSM"""
    if callback.message is not None:
        chat_id = callback.message.chat.id
        message_id = callback.message.message_id
    else:
        # Кнопка под inline-сообщением: отвечаем в личные сообщения
        chat_id = callback.from_user.id
        message_id = 0

    await fsm.handle_callback(callback.id, callback.from_user.id, chat_id, message_id, callback.data)


@router.message(F.chat.type == ChatType.PRIVATE, F.text, ~F.text.startswith("/"), OwnerFilter())
async def owner_text(message: Message, fsm: ContestFSM):
    """Описание нового конкурса или сообщение для победителя"""
    await fsm.handle_text(message.from_user.id, message.text)
