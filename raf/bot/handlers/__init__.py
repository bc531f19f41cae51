from aiogram import Dispatcher
from .commands import router as commands_router
from .contests import router as contests_router
import logging


def register_all_handlers(dp: Dispatcher) -> None:
    """
    Регистрирует все обработчики сообщений в диспетчере.

    Args:
        dp (Dispatcher): Диспетчер, в котором регистрируются обработчики
    """
    logging.info("Регистрация обработчиков бота...")

    # Команды регистрируются первыми, чтобы текст "/..." не попал к ContestFSM
    dp.include_router(commands_router)
    logging.info("Зарегистрирован роутер commands")

    dp.include_router(contests_router)
    logging.info("Зарегистрирован роутер contests")

    logging.info("Все обработчики зарегистрированы успешно")
