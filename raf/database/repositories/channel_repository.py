from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
import logging

from raf.database.models import Channel
from raf.exceptions import ConstraintError


class ChannelRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_channel(self, channel_id: int, registered_by: int, link: str, name: str) -> Channel:
        """Сохраняет зарегистрированный канал"""
        channel = Channel(id=channel_id, registered_by=registered_by, link=link, name=name)
        self.session.add(channel)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при регистрации канала {channel_id}: {e.orig}")
            raise ConstraintError(str(e.orig)) from e
        return channel

    async def get_channel(self, channel_id: int) -> Optional[Channel]:
        """Получает канал по ID"""
        result = await self.session.execute(
            select(Channel).where(Channel.id == channel_id)
        )
        return result.scalar_one_or_none()

    async def get_owner_channels(self, owner_id: int) -> List[Channel]:
        """Каналы, зарегистрированные пользователем"""
        result = await self.session.execute(
            select(Channel).where(Channel.registered_by == owner_id).order_by(Channel.id.asc())
        )
        return list(result.scalars().all())
