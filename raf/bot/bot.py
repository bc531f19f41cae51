from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
import logging
import traceback
import asyncio

from raf.config import settings
from raf.bot.contest_fsm import ContestFSM
from raf.bot.utils.subscription import MembershipVerifier
from raf.database.store import ContestStore


async def setup_bot(store: ContestStore | None = None) -> tuple[Bot, Dispatcher]:
    """
    Настройка и инициализация бота и диспетчера.

    ContestStore, MembershipVerifier и ContestFSM создаются один раз и передаются
    обработчикам через workflow data диспетчера (dp["store"], dp["fsm"], dp["bot_name"]).

    Args:
        store (ContestStore | None): Хранилище конкурсов, по умолчанию на основной базе

    Returns:
        tuple[Bot, Dispatcher]: Настроенные экземпляры бота и диспетчера
    """
    try:
        # Создаем бота с настройками
        logging.info("Создание экземпляра бота...")
        bot = Bot(
            token=settings.BOT_TOKEN,
            default=DefaultBotProperties(parse_mode=None)  # Все сообщения без разметки
        )

        store = store or ContestStore()
        verifier = MembershipVerifier(bot)
        fsm = ContestFSM(store, bot, verifier, settings.BOT_NAME, join_wait=settings.JOIN_WAIT_SECONDS)

        # Создаем диспетчер
        logging.info("Создание диспетчера...")
        dp = Dispatcher()
        dp["store"] = store
        dp["fsm"] = fsm
        dp["bot_name"] = settings.BOT_NAME

        # Регистрация обработчиков
        logging.info("Регистрация обработчиков...")
        from .handlers import register_all_handlers
        register_all_handlers(dp)

        # Регистрация middleware
        from .middlewares import setup_middlewares
        setup_middlewares(dp, store)

        logging.info("Бот настроен и готов к запуску")

        return bot, dp
    except Exception as e:
        logging.error(f"Ошибка при настройке бота: {e}")
        logging.error(traceback.format_exc())
        raise


async def start_polling(bot: Bot, dp: Dispatcher, shutdown_event: asyncio.Event | None = None) -> None:
    """
    Запуск бота в режиме long polling.

    Args:
        bot (Bot): Экземпляр бота
        dp (Dispatcher): Экземпляр диспетчера
        shutdown_event (asyncio.Event, optional): Событие для сигнализации остановки бота
    """
    logging.info("Запуск бота в режиме long polling")

    if shutdown_event is None:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
        return

    polling_task = asyncio.create_task(
        dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types(),
            handle_signals=False  # Сигналы обрабатывает main.py
        ),
        name="bot_polling_task"
    )
    shutdown_task = asyncio.create_task(shutdown_event.wait(), name="shutdown_wait_task")

    done, pending = await asyncio.wait(
        [polling_task, shutdown_task],
        return_when=asyncio.FIRST_COMPLETED
    )

    if polling_task in done:
        # Поллинг завершился сам: пробрасываем ошибку для повторного запуска в main.py
        shutdown_task.cancel()
        polling_task.result()
        logging.info("Поллинг завершился")
        return

    logging.info("Получен сигнал завершения работы, останавливаем поллинг")
    await dp.stop_polling()
    try:
        await polling_task
    except asyncio.CancelledError:
        pass
    logging.info("Поллинг остановлен")
