from aiogram.filters import BaseFilter
from aiogram.types import Message, CallbackQuery
from typing import Union
import logging

from raf.database.store import ContestStore


class OwnerFilter(BaseFilter):
    """
    Фильтр для проверки, является ли пользователь владельцем канала.
    Владелец это пользователь, зарегистрировавший хотя бы один канал.
    """

    async def __call__(self, event: Union[Message, CallbackQuery], store: ContestStore) -> bool:
        """
        Args:
            event (Union[Message, CallbackQuery]): Событие от пользователя
            store (ContestStore): Хранилище из workflow data диспетчера

        Returns:
            bool: True, если пользователь владеет хотя бы одним каналом
        """
        if event.from_user is None:
            return False

        is_owner = await store.is_owner(event.from_user.id)
        if not is_owner:
            logging.debug(f"Пользователь {event.from_user.id} не является владельцем канала")
        return is_owner
