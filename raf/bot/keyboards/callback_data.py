from aiogram.filters.callback_data import CallbackData
from typing import Optional
import logging

# Данные кнопок разделяются пробелом: "<действие> <аргументы...>"
SEP = " "


class AcceptCallback(CallbackData, prefix="✅", sep=SEP):
    """Приглашенный пользователь принял приглашение"""
    source: int
    dest: int
    chan: int
    contest: int


class RejectCallback(CallbackData, prefix="❌", sep=SEP):
    """Приглашенный пользователь отказался"""
    pass


class ManageCallback(CallbackData, prefix="manage", sep=SEP):
    chan: int


class MainCallback(CallbackData, prefix="main", sep=SEP):
    chan: int


class CreateCallback(CallbackData, prefix="create", sep=SEP):
    chan: int


class DeleteCallback(CallbackData, prefix="delete", sep=SEP):
    chan: int


class DeleteContestCallback(CallbackData, prefix="delete_contest", sep=SEP):
    chan: int
    contest: int


class StartCallback(CallbackData, prefix="start", sep=SEP):
    chan: int


class StartContestCallback(CallbackData, prefix="start_contest", sep=SEP):
    chan: int
    contest: int


class StopCallback(CallbackData, prefix="stop", sep=SEP):
    chan: int


class StopContestCallback(CallbackData, prefix="stop_contest", sep=SEP):
    chan: int
    contest: int


class ListCallback(CallbackData, prefix="list", sep=SEP):
    chan: int


CALLBACKS = {
    cls.__prefix__: cls
    for cls in (
        AcceptCallback,
        RejectCallback,
        ManageCallback,
        MainCallback,
        CreateCallback,
        DeleteCallback,
        DeleteContestCallback,
        StartCallback,
        StartContestCallback,
        StopCallback,
        StopContestCallback,
        ListCallback,
    )
}


def parse_callback(data: Optional[str]) -> Optional[CallbackData]:
    """
    Разбирает данные нажатой кнопки в один из классов *Callback.

    Args:
        data (Optional[str]): callback_data из Telegram

    Returns:
        Optional[CallbackData]: Разобранные данные или None, если строка некорректна
    """
    if not data:
        return None

    action = data.split(SEP, 1)[0]
    callback_cls = CALLBACKS.get(action)
    if callback_cls is None:
        logging.warning(f"Неизвестное действие в callback: {data!r}")
        return None

    try:
        return callback_cls.unpack(data)
    except (TypeError, ValueError) as e:
        logging.warning(f"Не удалось разобрать callback {data!r}: {e}")
        return None
