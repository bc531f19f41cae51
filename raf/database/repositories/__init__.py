from raf.database.repositories.user_repository import UserRepository
from raf.database.repositories.channel_repository import ChannelRepository
from raf.database.repositories.contest_repository import ContestRepository
from raf.database.repositories.invitation_repository import InvitationRepository
from raf.database.repositories.ranking_repository import RankingRepository, Rank, ContestRank
from raf.database.repositories.pending_repository import PendingRepository

__all__ = [
    "UserRepository",
    "ChannelRepository",
    "ContestRepository",
    "InvitationRepository",
    "RankingRepository",
    "Rank",
    "ContestRank",
    "PendingRepository",
]
