from sqlalchemy import Column, Integer, BigInteger, ForeignKey, UniqueConstraint, CheckConstraint

from raf.database.db import Base
from raf.database.models.types import UTCDateTime, utcnow


class Invitation(Base):
    """
    Засчитанное приглашение: source пригласил dest в канал chan в рамках конкурса contest.
    """
    __tablename__ = "invitations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(UTCDateTime, nullable=False, default=utcnow)
    source = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    dest = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    chan = Column(BigInteger, ForeignKey("channels.id"), nullable=False)
    # Без каскада: конкурс с участниками удалить нельзя
    contest = Column(Integer, ForeignKey("contests.id"), nullable=False)

    __table_args__ = (
        CheckConstraint('source <> dest', name='ck_invitation_not_self'),
        # Одна пара пользователей засчитывается один раз на канал, независимо от конкурса
        UniqueConstraint('source', 'dest', 'chan', name='uq_invitation_source_dest_chan'),
    )

    def __repr__(self):
        return f"<Invitation(id={self.id}, source={self.source}, dest={self.dest}, contest={self.contest})>"
