from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
from typing import Iterable, Type

from raf.database.models import Channel, Contest
from raf.bot.keyboards.callback_data import (
    AcceptCallback,
    RejectCallback,
    ManageCallback,
    MainCallback,
    CreateCallback,
    DeleteCallback,
    StartCallback,
    StopCallback,
    ListCallback,
)


def get_manage_keyboard(chan_id: int) -> InlineKeyboardMarkup:
    """
    Меню управления конкурсами канала.

    Args:
        chan_id (int): ID канала

    Returns:
        InlineKeyboardMarkup: Кнопки Create/Delete/Start/Stop/List/Menu
    """
    builder = InlineKeyboardBuilder()
    builder.button(text="✍️ Create", callback_data=CreateCallback(chan=chan_id))
    builder.button(text="❌ Delete", callback_data=DeleteCallback(chan=chan_id))
    builder.button(text="▶️ Start", callback_data=StartCallback(chan=chan_id))
    builder.button(text="⏹ Stop", callback_data=StopCallback(chan=chan_id))
    builder.button(text="📄 List", callback_data=ListCallback(chan=chan_id))
    builder.button(text="🔙 Menu", callback_data=MainCallback(chan=chan_id))
    builder.adjust(2, 2, 2)
    return builder.as_markup()


def get_contest_selector_keyboard(contests: Iterable[Contest], callback_cls: Type) -> InlineKeyboardMarkup:
    """
    Список конкурсов, каждая кнопка ведет к действию callback_cls (start_contest, stop_contest, delete_contest).
    """
    builder = InlineKeyboardBuilder()
    for contest in contests:
        builder.button(text=contest.name, callback_data=callback_cls(chan=contest.chan, contest=contest.id))
    builder.adjust(1)
    return builder.as_markup()


def get_channels_keyboard(channels: Iterable[Channel]) -> InlineKeyboardMarkup:
    """Каналы владельца для команды /contest"""
    builder = InlineKeyboardBuilder()
    for channel in channels:
        builder.button(text=channel.name, callback_data=ManageCallback(chan=channel.id))
    builder.adjust(1)
    return builder.as_markup()


def get_invitation_keyboard(source: int, dest: int, chan_id: int, contest_id: int) -> InlineKeyboardMarkup:
    """Кнопки Accept/Refuse под приглашением"""
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(
        text="Accept ✅",
        callback_data=AcceptCallback(source=source, dest=dest, chan=chan_id, contest=contest_id).pack()
    ))
    builder.add(InlineKeyboardButton(
        text="Refuse ❌",
        callback_data=RejectCallback().pack()
    ))
    return builder.as_markup()
