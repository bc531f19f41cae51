"""Общие фикстуры: база SQLite в памяти и поддельный клиент Telegram."""
import os

# Тестам не нужен файл raf.db
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

from aiogram.enums import ChatMemberStatus
from sqlalchemy.pool import StaticPool

from raf.bot.contest_fsm import ContestFSM
from raf.bot.utils.subscription import MembershipVerifier
from raf.database.db import create_engine_from_url, create_session_factory, init_db
from raf.database.models.types import utcnow
from raf.database.store import ContestStore

OWNER_ID = 1
CHAN_ID = -1001
BOT_NAME = "raf_test_bot"


def make_member(status, is_member=None):
    """Ответ get_chat_member с нужным статусом"""
    return SimpleNamespace(status=status, is_member=is_member)


def sent_texts(bot):
    """Тексты всех send_message в порядке отправки"""
    return [call.args[1] for call in bot.send_message.call_args_list]


@pytest.fixture
async def engine():
    engine = create_engine_from_url("sqlite://", poolclass=StaticPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return ContestStore(create_session_factory(engine))


@pytest.fixture
async def channel(store):
    await store.upsert_user(OWNER_ID, "Owner", None, "owner")
    return await store.create_channel(CHAN_ID, OWNER_ID, "https://t.me/+raf", "RaF Channel")


@pytest.fixture
async def users(store):
    """Пригласившие 10, 11 и приглашенные 20, 21, 22"""
    await store.upsert_user(10, "Alice", "Smith", None)
    await store.upsert_user(11, "Bob", None, "bob")
    for user_id in (20, 21, 22):
        await store.upsert_user(user_id, f"Friend{user_id}")


@pytest.fixture
async def running_contest(store, channel):
    contest = await store.create_contest("August", "Gift Card", utcnow() + timedelta(days=1), CHAN_ID)
    return await store.start_contest(contest.id)


@pytest.fixture
def members():
    """Пользователи, состоящие в канале CHAN_ID"""
    return set()


@pytest.fixture
def bot(members):
    bot = AsyncMock()
    bot.send_message.return_value = SimpleNamespace(message_id=100)

    def get_chat_member(chat_id, user_id):
        if user_id in members:
            return make_member(ChatMemberStatus.MEMBER)
        return make_member(ChatMemberStatus.LEFT)

    bot.get_chat_member.side_effect = get_chat_member
    return bot


@pytest.fixture
def verifier(bot):
    return MembershipVerifier(bot)


@pytest.fixture
def fsm(store, bot, verifier):
    return ContestFSM(store, bot, verifier, BOT_NAME, join_wait=0)
