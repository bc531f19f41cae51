from sqlalchemy import Column, String, BigInteger, ForeignKey

from raf.database.db import Base


class Channel(Base):
    """
    Канал или (супер)группа, зарегистрированные владельцем.
    """
    __tablename__ = "channels"

    id = Column(BigInteger, primary_key=True, autoincrement=False)  # ID чата в Telegram
    registered_by = Column(BigInteger, ForeignKey("users.id"), nullable=False)  # Владелец
    link = Column(String, nullable=False)  # Пригласительная ссылка
    name = Column(String, nullable=False)

    def __repr__(self):
        return f"<Channel(id={self.id}, name='{self.name}', registered_by={self.registered_by})>"
