import logging
import sys
import argparse
from pathlib import Path

from alembic.config import Config
from alembic import command
from alembic.util.exc import CommandError

ALEMBIC_INI = Path(__file__).resolve().parent / "alembic.ini"


def get_alembic_config() -> Config:
    """
    Конфигурация Alembic. URL базы данных подставляется в migrations/env.py из настроек.

    Raises:
        FileNotFoundError: alembic.ini отсутствует рядом со скриптом
    """
    if not ALEMBIC_INI.exists():
        raise FileNotFoundError(f"Файл alembic.ini не найден по пути: {ALEMBIC_INI}")
    return Config(str(ALEMBIC_INI))


def run_migrations(upgrade: bool = True, revision: str | None = None, sql: bool = False) -> bool:
    """
    Применяет или откатывает миграции схемы RaF.

    Args:
        upgrade (bool): True для применения миграций, False для отката
        revision (str | None): Версия миграции (по умолчанию 'head' для upgrade и '-1' для downgrade)
        sql (bool): Выводить SQL вместо выполнения миграций

    Returns:
        bool: True, если команда выполнена успешно
    """
    alembic_cfg = get_alembic_config()

    try:
        if upgrade:
            target_revision = revision or "head"
            logging.info(f"Применение миграций до версии: {target_revision}")
            command.upgrade(alembic_cfg, target_revision, sql=sql)
        else:
            target_revision = revision or "-1"
            logging.info(f"Откат миграций до версии: {target_revision}")
            command.downgrade(alembic_cfg, target_revision, sql=sql)
    except CommandError as e:
        logging.error(f"Ошибка при выполнении миграций: {e}")
        return False

    logging.info("Миграции выполнены успешно")
    return True


if __name__ == "__main__":
    # Импорт настроек настраивает логирование и читает .env
    from raf.config import settings  # noqa: F401

    parser = argparse.ArgumentParser(description="Управление миграциями базы данных RaF")
    parser.add_argument("--downgrade", action="store_true", help="Откатить миграции")
    parser.add_argument("--revision", help="Версия миграции (по умолчанию 'head' для upgrade и '-1' для downgrade)")
    parser.add_argument("--sql", action="store_true", help="Только вывести SQL без выполнения миграций")
    args = parser.parse_args()

    success = run_migrations(
        upgrade=not args.downgrade,
        revision=args.revision,
        sql=args.sql
    )
    sys.exit(0 if success else 1)
