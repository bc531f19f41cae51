from sqlalchemy import Column, Integer, BigInteger, Boolean, ForeignKey, false

from raf.database.db import Base


class PendingContestEdit(Base):
    """
    Следующее текстовое сообщение владельца канала chan описывает новый конкурс.
    Учитывается только последняя запись.
    """
    __tablename__ = "pending_contest_edits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chan = Column(BigInteger, ForeignKey("channels.id"), nullable=False)

    def __repr__(self):
        return f"<PendingContestEdit(id={self.id}, chan={self.chan})>"


class PendingWinnerContact(Base):
    """
    Победитель без @username: владелец может переслать ему одно сообщение через бота.
    """
    __tablename__ = "pending_winner_contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user = Column(BigInteger, ForeignKey("users.id"), nullable=False)  # Победитель
    owner = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    contacted = Column(Boolean, nullable=False, default=False, server_default=false())

    def __repr__(self):
        return f"<PendingWinnerContact(id={self.id}, user={self.user}, owner={self.owner}, contacted={self.contacted})>"
