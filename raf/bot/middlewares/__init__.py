from aiogram import Dispatcher
from .user_db import UserDBMiddleware
from raf.database.store import ContestStore
import logging


def setup_middlewares(dp: Dispatcher, store: ContestStore):
    """
    Настройка middleware для диспетчера сообщений

    Args:
        dp (Dispatcher): Диспетчер сообщений
        store (ContestStore): Хранилище, в которое сохраняются пользователи
    """
    logging.info("Настройка middleware для диспетчера сообщений")

    # Регистрируем middleware для работы с базой данных пользователей
    user_middleware = UserDBMiddleware(store)
    dp.message.middleware.register(user_middleware)
    dp.callback_query.middleware.register(user_middleware)
    logging.info("Зарегистрирован UserDBMiddleware")
