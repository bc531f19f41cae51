from sqlalchemy import Column, String, BigInteger

from raf.database.db import Base


class User(Base):
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, autoincrement=False)  # ID пользователя в Telegram
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=True)
    username = Column(String, nullable=True)  # Публичный @username, если есть

    @property
    def full_name(self) -> str:
        """Имя и фамилия через пробел"""
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    def __repr__(self):
        return f"<User(id={self.id}, first_name={self.first_name}, username={self.username})>"
