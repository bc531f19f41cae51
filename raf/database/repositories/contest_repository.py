from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from typing import List, Optional
import logging

from raf.database.models import Contest
from raf.database.models.types import utcnow
from raf.exceptions import AlreadyStarted, AlreadyStopped, ConstraintError, NotFound


class ContestRepository:
    """
    Репозиторий конкурсов.

    Переходы черновик -> запущен -> остановлен выполняются одним условным UPDATE,
    поэтому параллельные нажатия одной кнопки сериализуются базой данных.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, contest_id: int) -> Optional[Contest]:
        result = await self.session.execute(
            select(Contest)
            .where(Contest.id == contest_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_channel(self, chan_id: int) -> List[Contest]:
        """Все конкурсы канала, сначала с самой поздней датой окончания"""
        result = await self.session.execute(
            select(Contest).where(Contest.chan == chan_id).order_by(Contest.end.desc(), Contest.id.desc())
        )
        return list(result.scalars().all())

    async def create(self, name: str, prize: str, end: datetime, chan_id: int) -> Contest:
        contest = Contest(name=name, prize=prize, end=end, chan=chan_id, started_at=None, stopped=False)
        self.session.add(contest)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при создании конкурса '{name}' для канала {chan_id}: {e.orig}")
            raise ConstraintError(str(e.orig)) from e
        await self.session.refresh(contest)
        logging.info(f"Создан конкурс {contest.id} '{name}' для канала {chan_id}")
        return contest

    async def start(self, contest_id: int) -> Contest:
        """
        Запускает конкурс. started_at устанавливается один раз.

        Raises:
            NotFound: конкурса не существует
            AlreadyStarted: конкурс уже запущен
        """
        result = await self.session.execute(
            update(Contest)
            .where(Contest.id == contest_id, Contest.started_at.is_(None))
            .values(started_at=utcnow())
        )
        if result.rowcount == 0:
            await self.session.rollback()
            if await self.get_by_id(contest_id) is None:
                raise NotFound(f"contest {contest_id} does not exist")
            raise AlreadyStarted(contest_id)

        await self.session.commit()
        logging.info(f"Конкурс {contest_id} запущен")
        return await self.get_by_id(contest_id)

    async def stop(self, contest_id: int) -> Contest:
        """
        Останавливает конкурс.

        Raises:
            NotFound: конкурса не существует
            AlreadyStopped: конкурс уже остановлен
        """
        result = await self.session.execute(
            update(Contest)
            .where(Contest.id == contest_id, Contest.stopped.is_(False))
            .values(stopped=True)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            if await self.get_by_id(contest_id) is None:
                raise NotFound(f"contest {contest_id} does not exist")
            raise AlreadyStopped(contest_id)

        await self.session.commit()
        logging.info(f"Конкурс {contest_id} остановлен")
        return await self.get_by_id(contest_id)

    async def delete(self, contest_id: int) -> None:
        """
        Удаляет конкурс. Внешний ключ из invitations не дает удалить конкурс с участниками.

        Raises:
            NotFound: конкурса не существует
            ConstraintError: у конкурса есть приглашения
        """
        if await self.get_by_id(contest_id) is None:
            raise NotFound(f"contest {contest_id} does not exist")
        try:
            await self.session.execute(delete(Contest).where(Contest.id == contest_id))
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при удалении конкурса {contest_id}: {e.orig}")
            raise ConstraintError(str(e.orig)) from e
        logging.info(f"Конкурс {contest_id} удален")
