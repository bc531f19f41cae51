from sqlalchemy import Column, String, Integer, BigInteger, Boolean, ForeignKey, UniqueConstraint, false

from raf.database.db import Base
from raf.database.models.types import UTCDateTime


class Contest(Base):
    __tablename__ = "contests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    prize = Column(String, nullable=False)
    end = Column(UTCDateTime, nullable=False)  # После этой даты приглашения не засчитываются
    chan = Column(BigInteger, ForeignKey("channels.id"), nullable=False)
    started_at = Column(UTCDateTime, nullable=True)  # NULL = черновик
    stopped = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        UniqueConstraint('name', 'chan', name='uq_contest_name_chan'),
    )

    @property
    def is_draft(self) -> bool:
        return self.started_at is None

    @property
    def is_running(self) -> bool:
        """Конкурс запущен и еще не остановлен"""
        return self.started_at is not None and not self.stopped

    def __repr__(self):
        return f"<Contest(id={self.id}, name='{self.name}', chan={self.chan}, started_at={self.started_at}, stopped={self.stopped})>"
