from aiogram import Router, F
from aiogram.enums import ChatType
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message
import logging

from raf.bot.keyboards.inline import get_channels_keyboard, get_invitation_keyboard
from raf.bot.utils import texts
from raf.database.store import ContestStore
from raf.exceptions import DecodeError
from raf.utils.referral import ReferralParams, build_link

# Роутер для команд пользователей
router = Router(name="commands")

GROUP_CHAT_TYPES = {ChatType.GROUP, ChatType.SUPERGROUP}


@router.message(CommandStart(), F.chat.type == ChatType.PRIVATE)
async def start_command(message: Message, command: CommandObject, store: ContestStore, bot_name: str):
    """
    Обработчик команды /start.

    Без параметра показывает приветствие. С реферальным токеном показывает
    приглашение от пользователя (source, chan, contest) или выдает личную
    ссылку для приглашения друзей (chan, contest).
    """
    if not command.args:
        await message.answer(texts.WELCOME, parse_mode=None)
        return

    user_id = message.from_user.id
    try:
        params = ReferralParams.from_token(command.args)
    except DecodeError as e:
        logging.warning(f"Пользователь {user_id} открыл некорректную ссылку: {e}")
        await message.answer(texts.BAD_REFERRAL, parse_mode=None)
        return

    if not params.has_contest:
        await message.answer(texts.BAD_REFERRAL, parse_mode=None)
        return

    channel = await store.get_channel(params.chan)
    if channel is None:
        await message.answer(texts.UNKNOWN_REFERRAL, parse_mode=None)
        return

    if params.has_source:
        if params.source == user_id:
            await message.answer(texts.SELF_REFERRAL, parse_mode=None)
            return

        inviter = await store.get_user(params.source)
        if inviter is None:
            await message.answer(texts.UNKNOWN_REFERRAL, parse_mode=None)
            return

        logging.info(f"Пользователь {user_id} получил приглашение от {inviter.id} в канал {channel.id}")
        await message.answer(
            texts.invitation(inviter, channel),
            parse_mode=None,
            reply_markup=get_invitation_keyboard(inviter.id, user_id, channel.id, params.contest)
        )
        return

    contest = await store.get_contest(params.contest)
    if contest is None or contest.chan != channel.id:
        await message.answer(texts.UNKNOWN_REFERRAL, parse_mode=None)
        return

    link = build_link(bot_name, chan=channel.id, contest=contest.id, source=user_id)
    await message.answer(texts.personal_link(contest, channel, link), parse_mode=None)


@router.message(CommandStart())
async def start_in_group(message: Message):
    await message.answer(texts.WELCOME, parse_mode=None)


@router.message(F.chat.type.in_(GROUP_CHAT_TYPES), F.text.startswith("/"))
async def group_command(message: Message):
    """Все команды, кроме /start, работают только в личных сообщениях"""
    await message.answer(texts.GROUP_COMMANDS_DISABLED, parse_mode=None)


@router.message(Command("help"))
async def help_command(message: Message):
    await message.answer(texts.HELP, parse_mode=None)


@router.message(Command("contest"))
async def contest_command(message: Message, store: ContestStore):
    """Каналы пользователя с кнопками управления конкурсами"""
    channels = await store.list_channels(message.from_user.id)
    if not channels:
        await message.answer(texts.NO_CHANNELS, parse_mode=None)
        return

    await message.answer(texts.SELECT_CHANNEL, parse_mode=None, reply_markup=get_channels_keyboard(channels))


@router.message(Command("list"))
async def list_command(message: Message, store: ContestStore):
    channels = await store.list_channels(message.from_user.id)
    if not channels:
        await message.answer(texts.NO_CHANNELS_TO_LIST, parse_mode=None)
        return

    await message.answer(texts.channels_list(channels), parse_mode=None)


@router.message(Command("rank"))
async def rank_command(message: Message, store: ContestStore):
    """Места пользователя во всех конкурсах, где он кого-то пригласил"""
    ranks = await store.my_ranks(message.from_user.id)
    if not ranks:
        await message.answer(texts.NO_RANKS, parse_mode=None)
    else:
        await message.answer(texts.my_ranks(ranks), parse_mode=None)

    await message.answer(texts.HELP, parse_mode=None)
