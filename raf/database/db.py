from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import event, text
import logging

from raf.config import settings


# Создаем базовый класс для моделей
Base = declarative_base()


def to_async_url(url: str) -> str:
    """
    Подставляет асинхронный драйвер в URL базы данных.

    Args:
        url (str): URL из настроек (postgresql://... или sqlite:///...)

    Returns:
        str: URL с драйвером asyncpg или aiosqlite
    """
    if url.startswith('postgresql:'):
        return url.replace('postgresql:', 'postgresql+asyncpg:', 1)
    if url.startswith('sqlite:'):
        return url.replace('sqlite:', 'sqlite+aiosqlite:', 1)
    return url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite по умолчанию не проверяет внешние ключи
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_url(url: str, **kwargs) -> AsyncEngine:
    """
    Создает асинхронный движок с настройками пула под конкретную СУБД.

    Args:
        url (str): URL базы данных
        **kwargs: Дополнительные параметры для create_async_engine

    Returns:
        AsyncEngine: Движок SQLAlchemy
    """
    async_url = to_async_url(url)

    if async_url.startswith('sqlite'):
        new_engine = create_async_engine(async_url, echo=settings.DEBUG, **kwargs)
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return new_engine

    return create_async_engine(
        async_url,
        echo=settings.DEBUG,
        pool_size=20,  # Увеличиваем размер пула соединений
        max_overflow=40,  # Максимальное количество дополнительных соединений
        pool_timeout=30,  # Тайм-аут ожидания соединения из пула
        pool_pre_ping=True,  # Проверка соединения перед использованием
        # Важно для PgBouncer (pool_mode transaction/statement): отключаем prepared statements
        connect_args={
            "statement_cache_size": 0,
        },
        **kwargs,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Фабрика сессий для переданного движка"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,  # Отключаем автоматический flush для более предсказуемого поведения
    )


engine = create_engine_from_url(settings.DATABASE_URL)

# Создаем фабрику сессий
async_session = create_session_factory(engine)


async def init_db(bind: AsyncEngine = None):
    """
    Инициализирует базу данных и создает необходимые таблицы.

    Ошибки не перехватываются: без схемы бот работать не может.
    """
    bind = bind or engine
    logging.info(f"Инициализация базы данных {bind.url.render_as_string(hide_password=True)}")

    # Импорт моделей регистрирует таблицы в Base.metadata
    from raf.database import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await create_indexes(conn)

    logging.info("База данных инициализирована успешно")
    return async_session


async def create_indexes(conn):
    """
    Создает индексы в базе данных для оптимизации запросов
    """
    try:
        # Рейтинг считается по приглашениям конкретного конкурса
        await conn.execute(text("CREATE INDEX IF NOT EXISTS idx_invitations_contest_source ON invitations(contest, source)"))
        await conn.execute(text("CREATE INDEX IF NOT EXISTS idx_invitations_contest_dest ON invitations(contest, dest)"))

        # Списки конкурсов и каналов владельца
        await conn.execute(text("CREATE INDEX IF NOT EXISTS idx_contests_chan ON contests(chan)"))
        await conn.execute(text("CREATE INDEX IF NOT EXISTS idx_channels_registered_by ON channels(registered_by)"))

        # Поиск последних незавершенных операций
        await conn.execute(text("CREATE INDEX IF NOT EXISTS idx_pending_contest_edits_chan ON pending_contest_edits(chan, id DESC)"))
        await conn.execute(text("CREATE INDEX IF NOT EXISTS idx_pending_winner_contacts_owner ON pending_winner_contacts(owner, contacted, id DESC)"))

        logging.info("Индексы базы данных созданы успешно")
    except Exception as e:
        logging.warning(f"Ошибка при создании индексов: {e}")

