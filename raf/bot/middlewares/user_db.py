from typing import Any, Awaitable, Callable, Dict
from aiogram import BaseMiddleware
from aiogram.types import Message, CallbackQuery
from sqlalchemy.exc import SQLAlchemyError
import logging

from raf.database.store import ContestStore


class UserDBMiddleware(BaseMiddleware):
    """
    Middleware для автоматического сохранения пользователей в базе данных
    при любом взаимодействии с ботом.
    """

    def __init__(self, store: ContestStore):
        self.store = store

    async def __call__(
        self,
        handler: Callable[[Message, Dict[str, Any]], Awaitable[Any]],
        event: Message | CallbackQuery,
        data: Dict[str, Any]
    ) -> Any:
        # Получаем данные пользователя из события
        user = event.from_user

        if user and not user.is_bot:
            try:
                # Создаем пользователя или обновляем имя, если оно изменилось
                await self.store.upsert_user(user.id, user.first_name, user.last_name, user.username)
            except SQLAlchemyError as e:
                logging.error(f"Ошибка при сохранении пользователя {user.id} в БД: {e}")

        # Продолжаем обработку события
        return await handler(event, data)
