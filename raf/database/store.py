from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from raf.database.db import async_session
from raf.database.models import User, Channel, Contest
from raf.database.repositories import (
    UserRepository,
    ChannelRepository,
    ContestRepository,
    InvitationRepository,
    RankingRepository,
    PendingRepository,
    Rank,
    ContestRank,
)


class ContestStore:
    """
    Единая точка доступа к данным конкурсов.

    Каждая операция открывает собственную сессию и фиксирует изменения до возврата,
    поэтому ни одна транзакция не остается открытой между событиями Telegram.
    Ничего не кэшируется: каждый вызов читает актуальное состояние базы.
    """

    def __init__(self, session_factory: async_sessionmaker = async_session):
        self.session_factory = session_factory

    # Пользователи

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self.session_factory() as session:
            return await UserRepository(session).get_user(user_id)

    async def upsert_user(self, user_id: int, first_name: str, last_name: str | None = None,
                          username: str | None = None) -> User:
        async with self.session_factory() as session:
            return await UserRepository(session).upsert_user(user_id, first_name, last_name, username)

    async def list_owners(self) -> List[User]:
        async with self.session_factory() as session:
            return await UserRepository(session).list_owners()

    async def is_owner(self, user_id: int) -> bool:
        async with self.session_factory() as session:
            return await UserRepository(session).is_owner(user_id)

    # Каналы

    async def get_channel(self, channel_id: int) -> Optional[Channel]:
        async with self.session_factory() as session:
            return await ChannelRepository(session).get_channel(channel_id)

    async def list_channels(self, owner_id: int) -> List[Channel]:
        async with self.session_factory() as session:
            return await ChannelRepository(session).get_owner_channels(owner_id)

    async def create_channel(self, channel_id: int, registered_by: int, link: str, name: str) -> Channel:
        async with self.session_factory() as session:
            return await ChannelRepository(session).create_channel(channel_id, registered_by, link, name)

    # Конкурсы

    async def get_contest(self, contest_id: int) -> Optional[Contest]:
        async with self.session_factory() as session:
            return await ContestRepository(session).get_by_id(contest_id)

    async def list_contests(self, chan_id: int) -> List[Contest]:
        async with self.session_factory() as session:
            return await ContestRepository(session).list_by_channel(chan_id)

    async def create_contest(self, name: str, prize: str, end: datetime, chan_id: int) -> Contest:
        async with self.session_factory() as session:
            return await ContestRepository(session).create(name, prize, end, chan_id)

    async def start_contest(self, contest_id: int) -> Contest:
        async with self.session_factory() as session:
            return await ContestRepository(session).start(contest_id)

    async def stop_contest(self, contest_id: int) -> Contest:
        async with self.session_factory() as session:
            return await ContestRepository(session).stop(contest_id)

    async def delete_contest(self, contest_id: int) -> None:
        async with self.session_factory() as session:
            await ContestRepository(session).delete(contest_id)

    # Приглашения

    async def insert_invitation(self, source: int, dest: int, chan_id: int, contest_id: int) -> None:
        async with self.session_factory() as session:
            await InvitationRepository(session).insert(source, dest, chan_id, contest_id)

    async def delete_invitation(self, dest: int, contest_id: int) -> int:
        async with self.session_factory() as session:
            return await InvitationRepository(session).delete(dest, contest_id)

    async def count_invitations(self, contest_id: int) -> int:
        async with self.session_factory() as session:
            return await InvitationRepository(session).count(contest_id)

    async def list_invited_users(self, contest_id: int) -> List[int]:
        async with self.session_factory() as session:
            return await InvitationRepository(session).list_dests(contest_id)

    # Рейтинги

    async def rank(self, contest_id: int) -> List[Rank]:
        async with self.session_factory() as session:
            return await RankingRepository(session).rank(contest_id)

    async def my_ranks(self, user_id: int) -> List[ContestRank]:
        async with self.session_factory() as session:
            return await RankingRepository(session).my_ranks(user_id)

    # Незавершенные операции

    async def upsert_pending_contest_edit(self, chan_id: int) -> None:
        async with self.session_factory() as session:
            await PendingRepository(session).upsert_contest_edit(chan_id)

    async def latest_pending_contest_edit(self, owner_channels: Iterable[int]) -> Optional[Channel]:
        async with self.session_factory() as session:
            return await PendingRepository(session).latest_contest_edit(owner_channels)

    async def create_pending_winner_contact(self, user_id: int, owner_id: int) -> None:
        async with self.session_factory() as session:
            await PendingRepository(session).create_winner_contact(user_id, owner_id)

    async def latest_uncontacted_winner(self, owner_id: int) -> Optional[User]:
        async with self.session_factory() as session:
            return await PendingRepository(session).latest_uncontacted_winner(owner_id)

    async def mark_winner_contacted(self, owner_id: int, user_id: int) -> None:
        async with self.session_factory() as session:
            await PendingRepository(session).mark_contacted(owner_id, user_id)
