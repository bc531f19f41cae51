from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Iterable, Optional
import logging

from raf.database.models import Channel, User, PendingContestEdit, PendingWinnerContact


class PendingRepository:
    """
    Незавершенные диалоги с владельцами каналов: создание конкурса
    и отправка сообщения победителю без @username.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert_contest_edit(self, chan_id: int) -> None:
        """Запоминает, что следующее сообщение владельца описывает конкурс канала chan_id"""
        await self.session.execute(delete(PendingContestEdit).where(PendingContestEdit.chan == chan_id))
        self.session.add(PendingContestEdit(chan=chan_id))
        await self.session.commit()
        logging.info(f"Ожидается описание нового конкурса для канала {chan_id}")

    async def latest_contest_edit(self, channel_ids: Iterable[int]) -> Optional[Channel]:
        """Канал из последней незавершенной операции создания конкурса среди channel_ids"""
        channel_ids = list(channel_ids)
        if not channel_ids:
            return None

        result = await self.session.execute(
            select(Channel)
            .join(PendingContestEdit, PendingContestEdit.chan == Channel.id)
            .where(PendingContestEdit.chan.in_(channel_ids))
            .order_by(PendingContestEdit.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_winner_contact(self, user_id: int, owner_id: int) -> None:
        self.session.add(PendingWinnerContact(user=user_id, owner=owner_id, contacted=False))
        await self.session.commit()
        logging.info(f"Владелец {owner_id} может отправить сообщение победителю {user_id}")

    async def latest_uncontacted_winner(self, owner_id: int) -> Optional[User]:
        """Последний победитель, которому владелец еще не написал"""
        result = await self.session.execute(
            select(User)
            .join(PendingWinnerContact, PendingWinnerContact.user == User.id)
            .where(PendingWinnerContact.owner == owner_id, PendingWinnerContact.contacted.is_(False))
            .order_by(PendingWinnerContact.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def mark_contacted(self, owner_id: int, user_id: int) -> None:
        await self.session.execute(
            update(PendingWinnerContact)
            .where(PendingWinnerContact.owner == owner_id, PendingWinnerContact.user == user_id)
            .values(contacted=True)
        )
        await self.session.commit()
