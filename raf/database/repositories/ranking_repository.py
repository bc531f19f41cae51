from dataclasses import dataclass
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from raf.database.models import User, Contest, Invitation


@dataclass
class Rank:
    """Место пригласившего в рейтинге конкурса"""
    rank: int
    user: User
    invites: int


@dataclass
class ContestRank:
    """Место пользователя в одном из конкурсов"""
    contest: Contest
    rank: int


class RankingRepository:
    """
    Рейтинги конкурсов.

    Места считаются оконной функцией ROW_NUMBER по числу приглашений (по убыванию).
    При равенстве выше стоит пользователь с большим ID, так что номера мест
    всегда уникальны и идут подряд начиная с 1.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _invites_subquery(self):
        invites = func.count(Invitation.id).label("invites")
        return (
            select(
                Invitation.contest.label("contest"),
                Invitation.source.label("source"),
                invites,
                func.row_number().over(
                    partition_by=Invitation.contest,
                    order_by=(func.count(Invitation.id).desc(), Invitation.source.desc()),
                ).label("rank"),
            )
            .group_by(Invitation.contest, Invitation.source)
            .subquery()
        )

    async def rank(self, contest_id: int) -> List[Rank]:
        """
        Полный рейтинг конкурса.

        Args:
            contest_id (int): ID конкурса

        Returns:
            List[Rank]: Участники по возрастанию места. Пустой список, если приглашений нет
        """
        ranked = self._invites_subquery()
        result = await self.session.execute(
            select(ranked.c.rank, ranked.c.invites, User)
            .select_from(ranked)
            .join(User, User.id == ranked.c.source)
            .where(ranked.c.contest == contest_id)
            .order_by(ranked.c.rank.asc())
        )
        return [Rank(rank=row.rank, user=row.User, invites=row.invites) for row in result.all()]

    async def my_ranks(self, user_id: int) -> List[ContestRank]:
        """Места пользователя как пригласившего во всех конкурсах, где он кого-то пригласил"""
        ranked = self._invites_subquery()
        result = await self.session.execute(
            select(ranked.c.rank, Contest)
            .select_from(ranked)
            .join(Contest, Contest.id == ranked.c.contest)
            .where(ranked.c.source == user_id)
            .order_by(Contest.end.desc(), Contest.id.desc())
        )
        return [ContestRank(contest=row.Contest, rank=row.rank) for row in result.all()]
