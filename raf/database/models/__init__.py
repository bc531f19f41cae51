from raf.database.models.user import User
from raf.database.models.channel import Channel
from raf.database.models.contest import Contest
from raf.database.models.invitation import Invitation
from raf.database.models.pending import PendingContestEdit, PendingWinnerContact

__all__ = ["User", "Channel", "Contest", "Invitation", "PendingContestEdit", "PendingWinnerContact"]
