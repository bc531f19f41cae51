"""
Тексты сообщений бота. Все сообщения отправляются без разметки (parse_mode=None).
"""
from datetime import datetime, timezone
from typing import List, Optional

from raf.database.models import User, Channel, Contest
from raf.database.repositories import Rank, ContestRank

WELCOME = "Welcome to RaF (Refer a Friend) Bot! Have a look at the command list, with /help"

HELP = (
    "What do you want to do?\n"
    "/contest - Start/Stop/Create/Delete the contests for your groups/channels\n"
    "/list - List your registered groups/channels\n"
    "/rank - Your rank in the challenges you joined\n"
    "/help - This command list"
)

GROUP_COMMANDS_DISABLED = (
    "All the commands, except for /start are disabled in groups. "
    "Write me privately to use them."
)

NO_CHANNELS = "You have no registered groups/channels!"
SELECT_CHANNEL = "Select the group/channel you want to manage"
NO_CHANNELS_TO_LIST = "You don't have any channel registered, yet!"
NO_RANKS = "You haven't participated in any contest yet!"

JOIN_TIMEOUT = "You haven't joined the channel within {seconds} seconds :("
CONTEST_MISSING = "You joined the channel but the contest does not exist."
CONTEST_FINISHED = "You joined the group/channel but the contest is finished."
CONTEST_NOT_RUNNING = "You joined the group/channel but the contest is not running."
ALREADY_CREDITED = "You joined the group/channel, but this invitation has already been credited!"
INVITATION_FAILED = "Failed to register the invitation: {error}"
REJECTED = "Ok, doing nothing."
MEMBERSHIP_CHECK_FAILED = "Error while checking your membership: {error}"

NOTHING_TO_START = "You have no contests to start!"
NOTHING_TO_STOP = "You have no contests to stop!"
NOTHING_TO_DELETE = "You have no contests to delete!"
SELECT_TO_START = "Select the contest to start"
SELECT_TO_STOP = "Select the contest to stop"
SELECT_TO_DELETE = "Select the contest to delete"

ALREADY_STARTED = "You can't start an already started contest."
ALREADY_STOPPED = "Contest already stopped. Doing nothing."
CONTEST_NOT_FOUND = "Contest not found. Doing nothing."
CONTEST_STARTED = "Contest started!"
NO_PARTICIPANTS = "No one participated in the contest. Doing nothing."
DELETED = "Done!"
DELETE_FAILED = "Error: {error}. You can't delete a contest with participants."
PIN_FAILED = "I couldn't pin the message in {chan}: {error}"
PUBLISH_FAILED = "I couldn't publish the message in {chan}: {error}"

NO_CONTESTS = "You don't have any active or past contests for this group/channel!"

CONTEST_CREATED = "Contest {name} created successfully!"
CONTEST_PARSE_FAILED = (
    "Something wrong happened while creating your new contest.\n\n"
    "Error: {error}\n\n"
    "Please restart the contest creating process and send a correct message"
)
CONTEST_CREATE_FAILED = "Error: {error}"

MESSAGE_DELIVERED = "Message delivered to the winner!"
MESSAGE_NOT_DELIVERED = "I couldn't deliver the message to the winner: {error}"

BAD_REFERRAL = "This invitation link is not valid."
UNKNOWN_REFERRAL = "This invitation link refers to an unknown user or group/channel."
SELF_REFERRAL = "You can't invite yourself! Share the link with your friends."


def format_date(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def display_name(user: User) -> str:
    """Имя, фамилия и @username, если они есть"""
    name = user.full_name
    if user.username:
        name += f" (@{user.username})"
    return name


def rank_badge(rank: int) -> str:
    if rank == 1:
        return "🥇#1!"
    if rank <= 3:
        return f"🏆 #{rank}"
    return f"#{rank}"


def join_prompt(channel: Channel, seconds: int) -> str:
    return f"Please join 👉 {channel.name} ({channel.link}) within the next {seconds} seconds."


def joined(channel: Channel) -> str:
    return f"You joined {channel.name} 🤗"


def already_member(channel: Channel) -> str:
    return f"You are already a member of {channel.name} ({channel.link})."


def manage_menu(channel: Channel) -> str:
    return f"{channel.name}\n\nWhat do you want to do?"


def create_instructions(now: Optional[datetime] = None) -> str:
    """Формат сообщения для создания конкурса с примером на текущий месяц"""
    now = now or datetime.now(timezone.utc)
    return (
        "Send me a message with the following format:\n\n"
        "Contest name\n"
        "End date (YYYY-MM-DD hh:mm TZ)\n"
        "Prize\n\n"
        "For example:\n\n"
        f"{now:%B %Y}\n"
        f"{now:%Y-%m}-28 20:00 +01\n"
        "Amazon 50€ Gift Card"
    )


def contest_rules(contest: Contest, link: str) -> str:
    """Объявление о начале конкурса, публикуется в канале"""
    return (
        f"🔥{contest.name} contest 🔥\n\n"
        f"Who invites more friends wins a {contest.prize}!\n\n"
        "1. Open this link and get your personal invitation link\n"
        "2. Share your link with your friends\n"
        "3. Every friend that joins this group/channel through your link counts as a point\n\n"
        f"At the end of the contest ({format_date(contest.end)}) the user that referred "
        f"more friends will win a {contest.prize}!\n\n"
        "You can check your rank with the /rank command\n\n"
        f"👉 {link}"
    )


def leaderboard(contest: Contest, ranking: List[Rank]) -> str:
    """Итоговый рейтинг, публикуется в канале после остановки конкурса"""
    text = f"🏆 Contest ({contest.name}) finished 🏆\n\n\n"
    for row in ranking:
        text += f"{rank_badge(row.rank)} {display_name(row.user)} - {row.invites}\n"
    text += f"\n\nThe prize ({contest.prize}) is being delivered to our champion 🥇. Congratulations!!"
    return text


def winner_with_username(winner: User) -> str:
    return f"The winner username is @{winner.username}. Get in touch and send the prize!"


def winner_without_username(winner: User) -> str:
    return (
        f"The winner ({display_name(winner)}) has no username, so you can't contact them directly.\n\n"
        "Write ONE message here: I will deliver it to the winner. "
        "Tell them how to get in touch with you to receive the prize."
    )


def contests_table(rows: List[tuple]) -> str:
    """
    Таблица конкурсов канала.

    Args:
        rows (List[tuple]): Пары (конкурс, число участников)
    """
    text = "Name | End | Prize | Started | Stopped | Users\n"
    for contest, users in rows:
        started = "yes" if contest.started_at else "no"
        stopped = "yes" if contest.stopped else "no"
        text += (
            f"{contest.name} | {format_date(contest.end)} | {contest.prize} | "
            f"{started} | {stopped} | {users}\n"
        )
    text += "\nDates are all converted to UTC timezone.\nBetter view on desktop."
    return text


def invitation(inviter: User, channel: Channel) -> str:
    return f"{display_name(inviter)} invited you to join {channel.name}"


def personal_link(contest: Contest, channel: Channel, link: str) -> str:
    return (
        f"Thank you for joining the {contest.name} contest!\n"
        f"Here's the link to use for inviting your friends to join {channel.name}:\n\n"
        f"👉🏻{link}"
    )


def my_ranks(ranks: List[ContestRank]) -> str:
    text = "Your rankings\n\n"
    for row in ranks:
        text += f'Contest "{row.contest.name} ({format_date(row.contest.end)})": {rank_badge(row.rank)}\n'
    return text


def channels_list(channels: List[Channel]) -> str:
    return "\n".join(f"{i}. {channel.name} {channel.link}" for i, channel in enumerate(channels, start=1))
