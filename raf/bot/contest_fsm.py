from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message, InlineKeyboardMarkup
import asyncio
import logging
from typing import Optional, Set

from raf.bot.keyboards import inline
from raf.bot.keyboards.callback_data import (
    parse_callback,
    AcceptCallback,
    RejectCallback,
    ManageCallback,
    MainCallback,
    CreateCallback,
    DeleteCallback,
    DeleteContestCallback,
    StartCallback,
    StartContestCallback,
    StopCallback,
    StopContestCallback,
    ListCallback,
)
from raf.bot.utils import texts
from raf.bot.utils.subscription import MembershipVerifier
from raf.database.models import Channel, Contest
from raf.database.models.types import utcnow
from raf.database.store import ContestStore
from raf.exceptions import (
    AlreadyStarted,
    AlreadyStopped,
    ConstraintError,
    DuplicateInvitation,
    NotFound,
    ValidationError,
)
from raf.utils.contest_text import parse_contest_text
from raf.utils.referral import build_link


class ContestFSM:
    """
    Обработка нажатий кнопок и текстовых сообщений владельцев каналов.

    Состояние конкурсов хранится только в базе: каждое событие перечитывает
    данные из ContestStore перед изменением.

    Args:
        store (ContestStore): Хранилище конкурсов
        bot (Bot): Клиент Telegram
        verifier (MembershipVerifier): Проверка участия в каналах
        bot_name (str): Имя бота без @ для реферальных ссылок
        join_wait (int): Сколько секунд ждать вступления в канал после "Accept"
    """

    def __init__(self, store: ContestStore, bot: Bot, verifier: MembershipVerifier,
                 bot_name: str, join_wait: int = 10):
        self.store = store
        self.bot = bot
        self.verifier = verifier
        self.bot_name = bot_name
        self.join_wait = join_wait
        # Отложенные проверки вступления в канал; задача удаляется из набора по завершении
        self.join_checks: Set[asyncio.Task] = set()

    # Нажатия кнопок

    async def handle_callback(self, callback_id: str, sender_id: int, chat_id: int,
                              message_id: int, data: Optional[str]) -> None:
        """
        Единая точка входа для всех нажатий inline-кнопок.

        Args:
            callback_id (str): ID callback query (для снятия индикатора загрузки)
            sender_id (int): Кто нажал кнопку
            chat_id (int): Чат сообщения с кнопкой
            message_id (int): Сообщение с кнопкой
            data (Optional[str]): callback_data кнопки
        """
        event = parse_callback(data)
        if event is None:
            await self._answer(callback_id)
            return

        logging.info(f"Callback {data!r} от пользователя {sender_id}")

        if isinstance(event, AcceptCallback):
            await self._accept(callback_id, sender_id, chat_id, message_id, event)
            return
        if isinstance(event, RejectCallback):
            await self._answer(callback_id)
            await self._delete(chat_id, message_id)
            await self._send(chat_id, texts.REJECTED)
            return

        channel = await self.store.get_channel(event.chan)
        if channel is None:
            logging.warning(f"Callback {data!r} ссылается на незарегистрированный канал {event.chan}")
            await self._answer(callback_id)
            return

        if isinstance(event, ManageCallback):
            await self._answer(callback_id)
            await self._delete(chat_id, message_id)
            await self._show_manage_menu(chat_id, channel)
        elif isinstance(event, MainCallback):
            await self._answer(callback_id)
            await self._delete(chat_id, message_id)
            await self._send(chat_id, texts.HELP)
        elif isinstance(event, CreateCallback):
            await self._create(callback_id, chat_id, message_id, channel)
        elif isinstance(event, DeleteCallback):
            await self._select_contest(callback_id, chat_id, message_id, channel, "delete")
        elif isinstance(event, StartCallback):
            await self._select_contest(callback_id, chat_id, message_id, channel, "start")
        elif isinstance(event, StopCallback):
            await self._select_contest(callback_id, chat_id, message_id, channel, "stop")
        elif isinstance(event, ListCallback):
            await self._list(callback_id, chat_id, message_id, channel)
        elif isinstance(event, DeleteContestCallback):
            await self._delete_contest(callback_id, chat_id, message_id, channel, event.contest)
        elif isinstance(event, StartContestCallback):
            await self._start_contest(callback_id, chat_id, message_id, channel, event.contest)
        elif isinstance(event, StopContestCallback):
            await self._stop_contest(callback_id, sender_id, chat_id, message_id, channel, event.contest)
        else:
            await self._answer(callback_id)

    # Приглашения

    async def _accept(self, callback_id: str, sender_id: int, chat_id: int, message_id: int,
                      event: AcceptCallback) -> None:
        if sender_id != event.dest:
            logging.warning(f"Пользователь {sender_id} нажал Accept в приглашении для {event.dest}")
            await self._answer(callback_id)
            return

        channel = await self.store.get_channel(event.chan)
        if channel is None:
            await self._answer(callback_id)
            await self._send(chat_id, texts.UNKNOWN_REFERRAL)
            return

        check = await self.verifier.check(event.chan, event.dest)
        if check.is_member:
            await self._answer(callback_id)
            await self._delete(chat_id, message_id)
            await self._send(chat_id, texts.already_member(channel))
            return
        if check.failed:
            await self._answer(callback_id)
            await self._send(chat_id, texts.MEMBERSHIP_CHECK_FAILED.format(error=check.error))
            return

        await self._answer(callback_id)
        await self._send(chat_id, texts.join_prompt(channel, self.join_wait))

        task = asyncio.create_task(
            self._recheck_join(chat_id, message_id, event, channel),
            name=f"join_check_{event.contest}_{event.dest}",
        )
        self.join_checks.add(task)
        task.add_done_callback(self._on_join_check_done)

    async def _recheck_join(self, chat_id: int, message_id: int, event: AcceptCallback,
                            channel: Channel) -> None:
        """
        Через join_wait секунд один раз проверяет вступление и засчитывает приглашение.
        Повторных проверок нет: пользователь должен заново открыть ссылку.
        """
        try:
            await asyncio.sleep(self.join_wait)

            check = await self.verifier.check(event.chan, event.dest)
            if not check.is_member:
                logging.info(f"Пользователь {event.dest} не вступил в канал {event.chan} за {self.join_wait} сек.")
                await self._send(chat_id, texts.JOIN_TIMEOUT.format(seconds=self.join_wait))
                return

            contest = await self.store.get_contest(event.contest)
            if contest is None or contest.chan != event.chan:
                await self._send(chat_id, texts.CONTEST_MISSING)
                return
            if utcnow() > contest.end:
                await self._send(chat_id, texts.CONTEST_FINISHED)
                return
            if not contest.is_running:
                await self._send(chat_id, texts.CONTEST_NOT_RUNNING)
                return

            try:
                await self.store.insert_invitation(event.source, event.dest, event.chan, event.contest)
            except DuplicateInvitation:
                logging.info(f"Приглашение {event.source} -> {event.dest} в канале {event.chan} уже засчитано")
                await self._send(chat_id, texts.ALREADY_CREDITED)
                return
            except ConstraintError as e:
                await self._send(chat_id, texts.INVITATION_FAILED.format(error=e))
                return

            await self._send(chat_id, texts.joined(channel))
        finally:
            await self._delete(chat_id, message_id)

    def _on_join_check_done(self, task: asyncio.Task) -> None:
        self.join_checks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logging.error(f"Ошибка в отложенной проверке {task.get_name()}: {error}", exc_info=error)

    # Управление конкурсами

    async def _create(self, callback_id: str, chat_id: int, message_id: int, channel: Channel) -> None:
        await self._answer(callback_id)
        await self._delete(chat_id, message_id)
        await self.store.upsert_pending_contest_edit(channel.id)
        await self._send(chat_id, texts.create_instructions())

    async def _select_contest(self, callback_id: str, chat_id: int, message_id: int,
                              channel: Channel, action: str) -> None:
        """Показывает список конкурсов, подходящих для start, stop или delete"""
        contests = await self.store.list_contests(channel.id)

        if action == "start":
            contests = [contest for contest in contests if contest.is_draft]
            empty, prompt, callback_cls = texts.NOTHING_TO_START, texts.SELECT_TO_START, StartContestCallback
        elif action == "stop":
            contests = [contest for contest in contests if contest.is_running]
            empty, prompt, callback_cls = texts.NOTHING_TO_STOP, texts.SELECT_TO_STOP, StopContestCallback
        else:
            empty, prompt, callback_cls = texts.NOTHING_TO_DELETE, texts.SELECT_TO_DELETE, DeleteContestCallback

        if not contests:
            await self._answer(callback_id, empty, show_alert=True)
            return

        await self._answer(callback_id)
        await self._delete(chat_id, message_id)
        await self._send(chat_id, prompt, inline.get_contest_selector_keyboard(contests, callback_cls))

    async def _list(self, callback_id: str, chat_id: int, message_id: int, channel: Channel) -> None:
        contests = await self.store.list_contests(channel.id)
        if not contests:
            await self._answer(callback_id, texts.NO_CONTESTS, show_alert=True)
            return

        rows = [(contest, await self.store.count_invitations(contest.id)) for contest in contests]
        await self._answer(callback_id)
        await self._delete(chat_id, message_id)
        await self._send(chat_id, texts.contests_table(rows))
        await self._show_manage_menu(chat_id, channel)

    async def _channel_contest(self, channel: Channel, contest_id: int) -> Optional[Contest]:
        """Конкурс канала; конкурс другого канала считается отсутствующим"""
        contest = await self.store.get_contest(contest_id)
        if contest is None or contest.chan != channel.id:
            return None
        return contest

    async def _delete_contest(self, callback_id: str, chat_id: int, message_id: int,
                              channel: Channel, contest_id: int) -> None:
        await self._answer(callback_id)
        await self._delete(chat_id, message_id)
        if await self._channel_contest(channel, contest_id) is None:
            await self._send(chat_id, texts.CONTEST_NOT_FOUND)
            await self._show_manage_menu(chat_id, channel)
            return
        try:
            await self.store.delete_contest(contest_id)
        except NotFound:
            await self._send(chat_id, texts.CONTEST_NOT_FOUND)
        except ConstraintError as e:
            logging.warning(f"Конкурс {contest_id} не удален: {e}")
            await self._send(chat_id, texts.DELETE_FAILED.format(error=e))
        else:
            await self._send(chat_id, texts.DELETED)
        await self._show_manage_menu(chat_id, channel)

    async def _start_contest(self, callback_id: str, chat_id: int, message_id: int,
                             channel: Channel, contest_id: int) -> None:
        await self._answer(callback_id)
        await self._delete(chat_id, message_id)
        if await self._channel_contest(channel, contest_id) is None:
            await self._send(chat_id, texts.CONTEST_NOT_FOUND)
            await self._show_manage_menu(chat_id, channel)
            return
        try:
            contest = await self.store.start_contest(contest_id)
        except AlreadyStarted:
            await self._send(chat_id, texts.ALREADY_STARTED)
        except NotFound:
            await self._send(chat_id, texts.CONTEST_NOT_FOUND)
        else:
            await self._send(chat_id, texts.CONTEST_STARTED)
            link = build_link(self.bot_name, chan=channel.id, contest=contest.id)
            await self._publish(chat_id, channel, texts.contest_rules(contest, link))
        await self._show_manage_menu(chat_id, channel)

    async def _stop_contest(self, callback_id: str, sender_id: int, chat_id: int, message_id: int,
                            channel: Channel, contest_id: int) -> None:
        await self._answer(callback_id)
        await self._delete(chat_id, message_id)

        contest = await self._channel_contest(channel, contest_id)
        if contest is None:
            await self._send(chat_id, texts.CONTEST_NOT_FOUND)
            await self._show_manage_menu(chat_id, channel)
            return
        if contest.stopped:
            await self._send(chat_id, texts.ALREADY_STOPPED)
            await self._show_manage_menu(chat_id, channel)
            return

        # Приглашения пользователей, покинувших канал, не участвуют в рейтинге
        await self.verifier.prune_contest(self.store, contest)

        try:
            contest = await self.store.stop_contest(contest_id)
        except AlreadyStopped:
            await self._send(chat_id, texts.ALREADY_STOPPED)
            await self._show_manage_menu(chat_id, channel)
            return

        ranking = await self.store.rank(contest.id)
        if not ranking:
            await self._send(chat_id, texts.NO_PARTICIPANTS)
            await self._show_manage_menu(chat_id, channel)
            return

        await self._publish(chat_id, channel, texts.leaderboard(contest, ranking))

        winner = ranking[0].user
        logging.info(f"Конкурс {contest.id} завершен, победитель {winner.id} ({ranking[0].invites} приглашений)")
        if winner.username:
            await self._send(chat_id, texts.winner_with_username(winner))
        else:
            await self.store.create_pending_winner_contact(winner.id, sender_id)
            await self._send(chat_id, texts.winner_without_username(winner))

        await self._show_manage_menu(chat_id, channel)

    # Текстовые сообщения владельцев

    async def handle_text(self, sender_id: int, text: str) -> None:
        """
        Свободный текст от владельца: описание нового конкурса (ровно 3 строки)
        или сообщение для победителя без @username.
        """
        if not await self.store.is_owner(sender_id):
            return

        lines = [line for line in text.splitlines() if line.strip()]
        if len(lines) == 3:
            await self._create_from_text(sender_id, text)
        else:
            await self._relay_to_winner(sender_id, text)

    async def _create_from_text(self, sender_id: int, text: str) -> None:
        channels = await self.store.list_channels(sender_id)
        channel = await self.store.latest_pending_contest_edit([channel.id for channel in channels])
        if channel is None:
            logging.info(f"Сообщение владельца {sender_id} проигнорировано: нет ожидающего создания конкурса")
            return

        try:
            draft = parse_contest_text(text, channel.id)
            contest = await self.store.create_contest(draft.name, draft.prize, draft.end, draft.chan)
        except ValidationError as e:
            await self._send(sender_id, texts.CONTEST_PARSE_FAILED.format(error=e))
        except ConstraintError as e:
            await self._send(sender_id, texts.CONTEST_CREATE_FAILED.format(error=e))
        else:
            await self._send(sender_id, texts.CONTEST_CREATED.format(name=contest.name))

        await self._show_manage_menu(sender_id, channel)

    async def _relay_to_winner(self, sender_id: int, text: str) -> None:
        winner = await self.store.latest_uncontacted_winner(sender_id)
        if winner is None:
            return

        try:
            await self.bot.send_message(winner.id, text, parse_mode=None)
        except TelegramAPIError as e:
            logging.error(f"Не удалось переслать сообщение владельца {sender_id} победителю {winner.id}: {e}")
            await self._send(sender_id, texts.MESSAGE_NOT_DELIVERED.format(error=e))
            return

        await self.store.mark_winner_contacted(sender_id, winner.id)
        await self._send(sender_id, texts.MESSAGE_DELIVERED)
        await self._send(sender_id, texts.HELP)

    # Вызовы Telegram API, ошибки которых не прерывают обработку

    async def _show_manage_menu(self, chat_id: int, channel: Channel) -> None:
        await self._send(chat_id, texts.manage_menu(channel), inline.get_manage_keyboard(channel.id))

    async def _publish(self, chat_id: int, channel: Channel, text: str) -> None:
        """Публикует сообщение в канале и закрепляет его. Об ошибках сообщает владельцу"""
        try:
            message = await self.bot.send_message(channel.id, text, parse_mode=None)
        except TelegramAPIError as e:
            logging.error(f"Не удалось опубликовать сообщение в канале {channel.id}: {e}")
            await self._send(chat_id, texts.PUBLISH_FAILED.format(chan=channel.name, error=e))
            return

        try:
            await self.bot.pin_chat_message(channel.id, message.message_id)
        except TelegramAPIError as e:
            logging.error(f"Не удалось закрепить сообщение в канале {channel.id}: {e}")
            await self._send(chat_id, texts.PIN_FAILED.format(chan=channel.name, error=e))

    async def _send(self, chat_id: int, text: str,
                    reply_markup: Optional[InlineKeyboardMarkup] = None) -> Optional[Message]:
        try:
            return await self.bot.send_message(chat_id, text, reply_markup=reply_markup, parse_mode=None)
        except TelegramAPIError as e:
            logging.error(f"Ошибка при отправке сообщения в чат {chat_id}: {e}")
            return None

    async def _answer(self, callback_id: str, text: Optional[str] = None, show_alert: bool = False) -> None:
        try:
            await self.bot.answer_callback_query(callback_id, text=text, show_alert=show_alert)
        except TelegramAPIError as e:
            logging.error(f"Ошибка при ответе на callback {callback_id}: {e}")

    async def _delete(self, chat_id: int, message_id: int) -> None:
        try:
            await self.bot.delete_message(chat_id, message_id)
        except TelegramAPIError as e:
            logging.error(f"Ошибка при удалении сообщения {message_id} в чате {chat_id}: {e}")
