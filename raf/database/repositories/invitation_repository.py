from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from typing import List
import logging

from raf.database.models import Invitation
from raf.exceptions import ConstraintError, DuplicateInvitation, SelfInvitation


def _is_unique_violation(error: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed", PostgreSQL: "duplicate key value violates unique constraint"
    message = str(error.orig).lower()
    return "unique" in message or "duplicate" in message


class InvitationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, source: int, dest: int, chan_id: int, contest_id: int) -> Invitation:
        """
        Засчитывает приглашение.

        Raises:
            SelfInvitation: source == dest
            DuplicateInvitation: пара (source, dest) уже засчитана в этом канале
            ConstraintError: ссылка на несуществующего пользователя, канал или конкурс
        """
        if source == dest:
            raise SelfInvitation(f"user {source} can't invite themselves")

        invitation = Invitation(source=source, dest=dest, chan=chan_id, contest=contest_id)
        self.session.add(invitation)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if _is_unique_violation(e):
                raise DuplicateInvitation(
                    f"invitation from {source} to {dest} for channel {chan_id} already exists"
                ) from e
            logging.error(f"Ошибка при сохранении приглашения {source} -> {dest}: {e.orig}")
            raise ConstraintError(str(e.orig)) from e

        logging.info(f"Приглашение {source} -> {dest} засчитано в конкурсе {contest_id}")
        return invitation

    async def delete(self, dest: int, contest_id: int) -> int:
        """Удаляет приглашения пользователя dest в конкурсе. Возвращает число удаленных строк"""
        result = await self.session.execute(
            delete(Invitation).where(Invitation.dest == dest, Invitation.contest == contest_id)
        )
        await self.session.commit()
        return result.rowcount

    async def count(self, contest_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Invitation.id)).where(Invitation.contest == contest_id)
        )
        return result.scalar() or 0

    async def list_dests(self, contest_id: int) -> List[int]:
        """Приглашенные пользователи конкурса"""
        result = await self.session.execute(
            select(Invitation.dest).where(Invitation.contest == contest_id).order_by(Invitation.id)
        )
        return [row[0] for row in result.all()]
