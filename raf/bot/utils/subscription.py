from aiogram import Bot
from aiogram.enums import ChatMemberStatus
from aiogram.exceptions import TelegramAPIError
from dataclasses import dataclass
import logging
from typing import List, Optional

from raf.exceptions import ExternalError

# Статусы, при которых пользователь считается участником канала
JOINED_STATUSES = (
    ChatMemberStatus.CREATOR,
    ChatMemberStatus.ADMINISTRATOR,
    ChatMemberStatus.MEMBER,
)


@dataclass(frozen=True)
class MembershipCheck:
    """
    Результат проверки участия.

    При ошибке Telegram API is_member равен False, а error содержит причину,
    чтобы вызывающий код мог показать ее пользователю.
    """
    is_member: bool
    error: Optional[ExternalError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class MembershipVerifier:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def check(self, chat_id: int, user_id: int) -> MembershipCheck:
        """
        Проверяет, состоит ли пользователь в канале или группе.

        Args:
            chat_id (int): ID канала
            user_id (int): ID пользователя

        Returns:
            MembershipCheck: Результат проверки
        """
        try:
            member = await self.bot.get_chat_member(chat_id, user_id)
        except TelegramAPIError as e:
            logging.error(f"Ошибка при проверке участия пользователя {user_id} в канале {chat_id}: {e}")
            return MembershipCheck(is_member=False, error=ExternalError(str(e), cause=e))

        # Возможные статусы: 'creator', 'administrator', 'member', 'restricted', 'left', 'kicked'
        if member.status in JOINED_STATUSES:
            return MembershipCheck(is_member=True)
        if member.status == ChatMemberStatus.RESTRICTED:
            return MembershipCheck(is_member=bool(getattr(member, "is_member", False)))
        return MembershipCheck(is_member=False)

    async def is_member(self, chat_id: int, user_id: int) -> bool:
        return (await self.check(chat_id, user_id)).is_member

    async def prune_contest(self, store, contest) -> List[int]:
        """
        Удаляет приглашения пользователей, которые покинули канал.

        Returns:
            List[int]: ID пользователей, чьи приглашения удалены
        """
        pruned = []
        for user_id in await store.list_invited_users(contest.id):
            if not await self.is_member(contest.chan, user_id):
                await store.delete_invitation(user_id, contest.id)
                pruned.append(user_id)

        if pruned:
            logging.info(f"Из конкурса {contest.id} удалены приглашения пользователей, покинувших канал: {pruned}")
        return pruned
