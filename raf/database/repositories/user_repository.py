from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, OperationalError
from typing import List, Optional
import logging
import asyncio

from raf.database.models import User, Channel


class UserRepository:
    """
    Репозиторий для работы с данными пользователей.
    """

    def __init__(self, session: AsyncSession):
        """
        Инициализирует репозиторий с заданной сессией базы данных.

        Args:
            session (AsyncSession): Асинхронная сессия SQLAlchemy
        """
        self.session = session
        self.max_retries = 3  # Максимальное количество повторных попыток при ошибках
        self.retry_delay = 0.5  # Задержка между повторными попытками в секундах

    async def get_user(self, user_id: int) -> Optional[User]:
        """Получает пользователя по ID"""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def upsert_user(self, user_id: int, first_name: str, last_name: str | None = None,
                          username: str | None = None) -> User:
        """
        Создает пользователя при первом обращении или обновляет его имя, если оно изменилось.

        Args:
            user_id (int): ID пользователя в Telegram
            first_name (str): Имя
            last_name (str | None): Фамилия
            username (str | None): Публичный @username без @

        Returns:
            User: Актуальная запись пользователя
        """
        retry_count = 0
        last_error = None

        while retry_count < self.max_retries:
            try:
                user = await self.get_user(user_id)
                if user is None:
                    user = User(id=user_id, first_name=first_name, last_name=last_name, username=username)
                    self.session.add(user)
                    await self.session.commit()
                    logging.info(f"Создан пользователь {user_id}")
                    return user

                if (user.first_name, user.last_name, user.username) != (first_name, last_name, username):
                    user.first_name = first_name
                    user.last_name = last_name
                    user.username = username
                    await self.session.commit()
                    logging.info(f"Обновлен профиль пользователя {user_id}")
                return user

            except IntegrityError:
                # Пользователь был создан параллельным обработчиком, перечитываем
                await self.session.rollback()
                retry_count += 1

            except OperationalError as e:
                last_error = e
                retry_count += 1
                logging.warning(f"Попытка {retry_count}/{self.max_retries} сохранения пользователя {user_id} завершилась ошибкой: {e}")
                await self.session.rollback()
                await asyncio.sleep(self.retry_delay * retry_count)

        logging.error(f"Не удалось сохранить пользователя {user_id} после {self.max_retries} попыток: {last_error}")
        raise last_error or RuntimeError(f"Не удалось сохранить пользователя {user_id}")

    async def list_owners(self) -> List[User]:
        """Все пользователи, зарегистрировавшие хотя бы один канал"""
        result = await self.session.execute(
            select(User)
            .join(Channel, Channel.registered_by == User.id)
            .distinct()
            .order_by(User.id)
        )
        return list(result.scalars().all())

    async def is_owner(self, user_id: int) -> bool:
        """Проверяет, зарегистрировал ли пользователь хотя бы один канал"""
        result = await self.session.execute(
            select(exists().where(Channel.registered_by == user_id))
        )
        return bool(result.scalar())
