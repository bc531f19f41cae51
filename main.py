import asyncio
import logging
import sys
import argparse
import signal
import functools

from aiogram.exceptions import TelegramNetworkError, TelegramServerError

from raf.config import settings
from raf.bot.bot import setup_bot, start_polling
from raf.database.db import init_db, engine

shutdown_event = asyncio.Event()


# Обработчик сигналов для корректного завершения работы
def handle_shutdown_signal(sig):
    """Обработчик сигналов для корректного завершения работы приложения."""
    logging.info(f"Получен сигнал завершения: {sig}")
    shutdown_event.set()


async def main():
    """Точка входа в приложение."""
    parser = argparse.ArgumentParser(description="Запуск RaF (Refer a Friend) бота")
    parser.add_argument("--skip-init-db", action="store_true",
                        help="Не создавать таблицы при запуске (схема управляется миграциями Alembic)")
    args = parser.parse_args()

    # Без токена и имени бота запуск невозможен
    settings.validate()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, functools.partial(handle_shutdown_signal, sig))
            logging.info(f"Зарегистрирован обработчик сигнала {sig}")
        except NotImplementedError:
            # Для систем, где add_signal_handler не поддерживается (Windows)
            logging.info(f"Обработчик сигнала {sig} не зарегистрирован - не поддерживается платформой")

    logging.info("Запуск RaF бота")

    if not args.skip_init_db:
        logging.info("Инициализация базы данных...")
        await init_db()

    logging.info("Настройка бота...")
    bot, dp = await setup_bot()

    try:
        # Ошибки сети Telegram не останавливают бота: поллинг перезапускается после паузы
        while not shutdown_event.is_set():
            try:
                await start_polling(bot, dp, shutdown_event=shutdown_event)
            except (TelegramNetworkError, TelegramServerError) as e:
                logging.error(f"Поллинг остановлен ошибкой Telegram API: {e}. "
                              f"Повтор через {settings.POLLING_RETRY_DELAY} сек.")
                try:
                    await asyncio.wait_for(shutdown_event.wait(), timeout=settings.POLLING_RETRY_DELAY)
                except asyncio.TimeoutError:
                    pass
            else:
                break
    finally:
        await shutdown(bot)


async def shutdown(bot):
    """Корректное завершение работы приложения."""
    logging.info("Завершение работы приложения...")
    await bot.session.close()
    await engine.dispose()
    logging.info("Работа завершена")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Принудительное завершение работы")
    except Exception as e:
        logging.error(f"Необработанное исключение: {e}")
        sys.exit(1)
