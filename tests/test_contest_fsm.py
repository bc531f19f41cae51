import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

from aiogram.exceptions import TelegramBadRequest

from raf.bot.utils import texts
from raf.database.models.types import utcnow
from raf.utils.referral import decode
from tests.conftest import BOT_NAME, CHAN_ID, OWNER_ID, sent_texts

MESSAGE_ID = 55


async def click(fsm, data, sender_id=OWNER_ID):
    await fsm.handle_callback("callback-id", sender_id, sender_id, MESSAGE_ID, data)


async def accept(fsm, members, source, dest, contest_id, joins=True):
    """Нажатие Accept и завершение отложенной проверки"""
    await click(fsm, f"✅ {source} {dest} {CHAN_ID} {contest_id}", sender_id=dest)
    if joins:
        members.add(dest)
    await asyncio.gather(*list(fsm.join_checks))


class TestCallbackRouting:
    async def test_malformed_callback_is_acknowledged(self, fsm, bot):
        await click(fsm, "nonsense 1 2")

        bot.answer_callback_query.assert_awaited_once_with("callback-id", text=None, show_alert=False)
        bot.send_message.assert_not_awaited()

    async def test_unknown_channel_is_acknowledged(self, fsm, bot, channel):
        await click(fsm, "manage -999")

        bot.answer_callback_query.assert_awaited_once()
        bot.send_message.assert_not_awaited()

    async def test_manage_shows_menu(self, fsm, bot, channel):
        await click(fsm, f"manage {CHAN_ID}")

        bot.delete_message.assert_awaited_once_with(OWNER_ID, MESSAGE_ID)
        args, kwargs = bot.send_message.call_args
        assert args == (OWNER_ID, texts.manage_menu(channel))
        assert kwargs["reply_markup"] is not None

    async def test_reject(self, fsm, bot):
        await click(fsm, "❌", sender_id=20)

        assert sent_texts(bot) == [texts.REJECTED]

    async def test_best_effort_calls_do_not_abort(self, fsm, bot, channel):
        bot.delete_message.side_effect = TelegramBadRequest(method=MagicMock(), message="message can't be deleted")
        bot.answer_callback_query.side_effect = TelegramBadRequest(method=MagicMock(), message="query is too old")

        await click(fsm, f"manage {CHAN_ID}")

        assert sent_texts(bot) == [texts.manage_menu(channel)]


class TestSelectors:
    async def test_nothing_to_start(self, fsm, bot, channel):
        await click(fsm, f"start {CHAN_ID}")

        bot.answer_callback_query.assert_awaited_once_with("callback-id", text=texts.NOTHING_TO_START, show_alert=True)
        bot.send_message.assert_not_awaited()

    async def test_start_lists_only_drafts(self, fsm, bot, store, running_contest):
        draft = await store.create_contest("Draft", "Mug", utcnow() + timedelta(days=3), CHAN_ID)

        await click(fsm, f"start {CHAN_ID}")

        args, kwargs = bot.send_message.call_args
        assert args[1] == texts.SELECT_TO_START
        buttons = [button for row in kwargs["reply_markup"].inline_keyboard for button in row]
        assert [button.callback_data for button in buttons] == [f"start_contest {CHAN_ID} {draft.id}"]

    async def test_stop_lists_only_running(self, fsm, bot, store, running_contest):
        await store.create_contest("Draft", "Mug", utcnow() + timedelta(days=3), CHAN_ID)

        await click(fsm, f"stop {CHAN_ID}")

        buttons = [button for row in bot.send_message.call_args.kwargs["reply_markup"].inline_keyboard for button in row]
        assert [button.callback_data for button in buttons] == [f"stop_contest {CHAN_ID} {running_contest.id}"]

    async def test_delete_lists_all(self, fsm, bot, store, running_contest):
        await store.create_contest("Draft", "Mug", utcnow() + timedelta(days=3), CHAN_ID)

        await click(fsm, f"delete {CHAN_ID}")

        buttons = [button for row in bot.send_message.call_args.kwargs["reply_markup"].inline_keyboard for button in row]
        assert len(buttons) == 2

    async def test_list_without_contests(self, fsm, bot, channel):
        await click(fsm, f"list {CHAN_ID}")

        bot.answer_callback_query.assert_awaited_once_with("callback-id", text=texts.NO_CONTESTS, show_alert=True)

    async def test_list_table(self, fsm, bot, store, running_contest, users):
        await store.insert_invitation(10, 20, CHAN_ID, running_contest.id)

        await click(fsm, f"list {CHAN_ID}")

        table = sent_texts(bot)[0]
        assert table.startswith("Name | End | Prize | Started | Stopped | Users")
        assert "August | " in table
        assert "| yes | no | 1" in table


class TestCreateContest:
    async def test_create_records_pending_edit(self, fsm, bot, store, channel):
        await click(fsm, f"create {CHAN_ID}")

        assert (await store.latest_pending_contest_edit([CHAN_ID])).id == CHAN_ID
        assert "End date (YYYY-MM-DD hh:mm TZ)" in sent_texts(bot)[0]

    async def test_text_creates_contest(self, fsm, bot, store, channel):
        await click(fsm, f"create {CHAN_ID}")
        end = utcnow() + timedelta(days=1)

        await fsm.handle_text(OWNER_ID, f"August\n{end:%Y-%m-%d %H:%M} +0000\nGift Card")

        contests = await store.list_contests(CHAN_ID)
        assert [(c.name, c.prize, c.is_draft) for c in contests] == [("August", "Gift Card", True)]
        assert texts.CONTEST_CREATED.format(name="August") in sent_texts(bot)
        assert sent_texts(bot)[-1] == texts.manage_menu(channel)

    async def test_invalid_date_is_reported(self, fsm, bot, store, channel):
        await click(fsm, f"create {CHAN_ID}")

        await fsm.handle_text(OWNER_ID, "August\nnext friday\nGift Card")

        assert await store.list_contests(CHAN_ID) == []
        assert any(text.startswith("Something wrong happened") for text in sent_texts(bot))
        assert sent_texts(bot)[-1] == texts.manage_menu(channel)

    async def test_duplicate_name_is_reported(self, fsm, bot, store, running_contest):
        await click(fsm, f"create {CHAN_ID}")
        end = utcnow() + timedelta(days=2)

        await fsm.handle_text(OWNER_ID, f"August\n{end:%Y-%m-%d %H:%M} +0000\nAnother prize")

        assert len(await store.list_contests(CHAN_ID)) == 1
        assert any(text.startswith("Error: ") for text in sent_texts(bot))

    async def test_without_pending_edit_text_is_dropped(self, fsm, bot, store, channel):
        end = utcnow() + timedelta(days=1)
        await fsm.handle_text(OWNER_ID, f"August\n{end:%Y-%m-%d %H:%M} +0000\nGift Card")

        assert await store.list_contests(CHAN_ID) == []
        bot.send_message.assert_not_awaited()

    async def test_non_owner_text_is_ignored(self, fsm, bot, store, channel, users):
        await store.upsert_pending_contest_edit(CHAN_ID)
        end = utcnow() + timedelta(days=1)

        await fsm.handle_text(10, f"August\n{end:%Y-%m-%d %H:%M} +0000\nGift Card")

        assert await store.list_contests(CHAN_ID) == []
        bot.send_message.assert_not_awaited()

    async def test_two_lines_keep_pending_edit(self, fsm, bot, store, channel):
        """Сообщение из двух строк не создает конкурс, владелец может повторить попытку"""
        await click(fsm, f"create {CHAN_ID}")
        bot.send_message.reset_mock()

        await fsm.handle_text(OWNER_ID, "August\nGift Card")

        assert await store.list_contests(CHAN_ID) == []
        assert (await store.latest_pending_contest_edit([CHAN_ID])).id == CHAN_ID
        bot.send_message.assert_not_awaited()


class TestStartContest:
    async def test_start_publishes_and_pins_rules(self, fsm, bot, store, channel):
        contest = await store.create_contest("August", "Gift Card", utcnow() + timedelta(days=1), CHAN_ID)

        await click(fsm, f"start_contest {CHAN_ID} {contest.id}")

        assert (await store.get_contest(contest.id)).is_running
        assert texts.CONTEST_STARTED in sent_texts(bot)

        rules_call = next(call for call in bot.send_message.call_args_list if call.args[0] == CHAN_ID)
        rules = rules_call.args[1]
        assert rules.startswith("🔥August contest 🔥")
        token = rules.rsplit(f"https://t.me/{BOT_NAME}?start=", 1)[1]
        assert decode(token) == {"chan": str(CHAN_ID), "contest": str(contest.id)}
        bot.pin_chat_message.assert_awaited_once_with(CHAN_ID, 100)

    async def test_start_twice(self, fsm, bot, store, running_contest):
        started_at = running_contest.started_at

        await click(fsm, f"start_contest {CHAN_ID} {running_contest.id}")

        assert texts.ALREADY_STARTED in sent_texts(bot)
        assert (await store.get_contest(running_contest.id)).started_at == started_at
        bot.pin_chat_message.assert_not_awaited()

    async def test_pin_failure_is_reported(self, fsm, bot, store, channel):
        contest = await store.create_contest("August", "Gift Card", utcnow() + timedelta(days=1), CHAN_ID)
        bot.pin_chat_message.side_effect = TelegramBadRequest(method=MagicMock(), message="not enough rights")

        await click(fsm, f"start_contest {CHAN_ID} {contest.id}")

        assert (await store.get_contest(contest.id)).is_running
        assert any(text.startswith("I couldn't pin the message") for text in sent_texts(bot))

    async def test_contest_of_another_channel(self, fsm, bot, store, channel):
        await store.create_channel(-1002, OWNER_ID, "https://t.me/+other", "Other Channel")
        other = await store.create_contest("Other", "Mug", utcnow() + timedelta(days=1), -1002)

        await click(fsm, f"start_contest {CHAN_ID} {other.id}")

        assert texts.CONTEST_NOT_FOUND in sent_texts(bot)
        assert not (await store.get_contest(other.id)).is_running
        assert all(call.args[0] not in (CHAN_ID, -1002) for call in bot.send_message.call_args_list)


class TestAcceptInvitation:
    async def test_already_member(self, fsm, bot, store, running_contest, users, members):
        members.add(20)

        await click(fsm, f"✅ 10 20 {CHAN_ID} {running_contest.id}", sender_id=20)

        assert fsm.join_checks == set()
        assert sent_texts(bot) == [texts.already_member(await store.get_channel(CHAN_ID))]
        assert sent_texts(bot)[0].endswith("(https://t.me/+raf).")
        assert await store.count_invitations(running_contest.id) == 0

    async def test_membership_error_is_reported(self, fsm, bot, store, running_contest, users):
        bot.get_chat_member.side_effect = TelegramBadRequest(method=MagicMock(), message="chat not found")

        await click(fsm, f"✅ 10 20 {CHAN_ID} {running_contest.id}", sender_id=20)

        assert fsm.join_checks == set()
        assert sent_texts(bot)[0].startswith("Error while checking your membership")

    async def test_join_is_credited(self, fsm, bot, store, running_contest, users, members, channel):
        await accept(fsm, members, 10, 20, running_contest.id)

        assert await store.count_invitations(running_contest.id) == 1
        assert sent_texts(bot) == [texts.join_prompt(channel, 0), texts.joined(channel)]
        # Приватный канал доступен только по ссылке-приглашению
        assert "https://t.me/+raf" in sent_texts(bot)[0]
        bot.delete_message.assert_awaited_with(20, MESSAGE_ID)

    async def test_handler_returns_before_recheck(self, fsm, bot, store, running_contest, users):
        await click(fsm, f"✅ 10 20 {CHAN_ID} {running_contest.id}", sender_id=20)

        assert len(fsm.join_checks) == 1
        bot.answer_callback_query.assert_awaited_once()
        await asyncio.gather(*list(fsm.join_checks))

    async def test_timeout_without_join(self, fsm, bot, store, running_contest, users, members):
        await accept(fsm, members, 10, 20, running_contest.id, joins=False)

        assert await store.count_invitations(running_contest.id) == 0
        assert sent_texts(bot)[-1] == texts.JOIN_TIMEOUT.format(seconds=0)
        # Одна проверка до ожидания и одна после, без повторов
        assert bot.get_chat_member.await_count == 2
        assert fsm.join_checks == set()

    async def test_duplicate_is_reported(self, fsm, bot, store, running_contest, users, members):
        await store.insert_invitation(10, 20, CHAN_ID, running_contest.id)

        await accept(fsm, members, 10, 20, running_contest.id)

        assert await store.count_invitations(running_contest.id) == 1
        assert sent_texts(bot)[-1] == texts.ALREADY_CREDITED

    async def test_finished_contest(self, fsm, bot, store, channel, users, members):
        contest = await store.create_contest("July", "Mug", utcnow() + timedelta(seconds=1), CHAN_ID)
        await store.start_contest(contest.id)
        await asyncio.sleep(1.1)

        await accept(fsm, members, 10, 20, contest.id)

        assert await store.count_invitations(contest.id) == 0
        assert sent_texts(bot)[-1] == texts.CONTEST_FINISHED

    async def test_draft_contest_is_not_credited(self, fsm, bot, store, channel, users, members):
        contest = await store.create_contest("Draft", "Mug", utcnow() + timedelta(days=1), CHAN_ID)

        await accept(fsm, members, 10, 20, contest.id)

        assert await store.count_invitations(contest.id) == 0
        assert sent_texts(bot)[-1] == texts.CONTEST_NOT_RUNNING

    async def test_missing_contest(self, fsm, bot, store, channel, users, members):
        await accept(fsm, members, 10, 20, 404)

        assert sent_texts(bot)[-1] == texts.CONTEST_MISSING

    async def test_accept_by_another_user_is_ignored(self, fsm, bot, running_contest, users):
        await click(fsm, f"✅ 10 20 {CHAN_ID} {running_contest.id}", sender_id=21)

        assert fsm.join_checks == set()
        bot.send_message.assert_not_awaited()


class TestStopContest:
    async def test_no_participants(self, fsm, bot, store, running_contest):
        await click(fsm, f"stop_contest {CHAN_ID} {running_contest.id}")

        assert (await store.get_contest(running_contest.id)).stopped
        assert texts.NO_PARTICIPANTS in sent_texts(bot)
        bot.pin_chat_message.assert_not_awaited()

    async def test_already_stopped(self, fsm, bot, store, running_contest):
        await store.stop_contest(running_contest.id)

        await click(fsm, f"stop_contest {CHAN_ID} {running_contest.id}")

        assert texts.ALREADY_STOPPED in sent_texts(bot)

    async def test_prune_changes_winner(self, fsm, bot, store, running_contest, users, members):
        await store.insert_invitation(10, 20, CHAN_ID, running_contest.id)
        await store.insert_invitation(10, 21, CHAN_ID, running_contest.id)
        await store.insert_invitation(11, 22, CHAN_ID, running_contest.id)
        # 21 покинул канал: у 10 и 11 по одному приглашению, побеждает больший ID
        members.update({20, 22})

        await click(fsm, f"stop_contest {CHAN_ID} {running_contest.id}")

        assert await store.list_invited_users(running_contest.id) == [20, 22]
        ranking = await store.rank(running_contest.id)
        assert ranking[0].user.id == 11
        assert texts.winner_with_username(ranking[0].user) in sent_texts(bot)

    async def test_winner_without_username_gets_relay(self, fsm, bot, store, running_contest, users, members):
        await store.insert_invitation(10, 20, CHAN_ID, running_contest.id)
        members.add(20)

        await click(fsm, f"stop_contest {CHAN_ID} {running_contest.id}")

        winner = await store.latest_uncontacted_winner(OWNER_ID)
        assert winner.id == 10

        await fsm.handle_text(OWNER_ID, "Hi! Write me at owner@example.com to get your prize")

        bot.send_message.assert_any_await(10, "Hi! Write me at owner@example.com to get your prize", parse_mode=None)
        assert texts.MESSAGE_DELIVERED in sent_texts(bot)
        assert await store.latest_uncontacted_winner(OWNER_ID) is None

    async def test_failed_relay_keeps_pending_contact(self, fsm, bot, store, channel, users):
        await store.create_pending_winner_contact(10, OWNER_ID)

        async def send_message(chat_id, text, **kwargs):
            if chat_id == 10:
                raise TelegramBadRequest(method=MagicMock(), message="bot was blocked by the user")

        bot.send_message.side_effect = send_message
        await fsm.handle_text(OWNER_ID, "Hello winner")

        assert (await store.latest_uncontacted_winner(OWNER_ID)).id == 10

    async def test_pin_failure_is_reported(self, fsm, bot, store, running_contest, users, members):
        await store.insert_invitation(10, 20, CHAN_ID, running_contest.id)
        members.add(20)
        bot.pin_chat_message.side_effect = TelegramBadRequest(method=MagicMock(), message="not enough rights")

        await click(fsm, f"stop_contest {CHAN_ID} {running_contest.id}")

        assert (await store.get_contest(running_contest.id)).stopped
        assert any(text.startswith("I couldn't pin the message") for text in sent_texts(bot))
        # Победитель без @username все равно ожидает сообщения от владельца
        assert (await store.latest_uncontacted_winner(OWNER_ID)).id == 10

    async def test_contest_of_another_channel(self, fsm, bot, store, channel):
        await store.create_channel(-1002, OWNER_ID, "https://t.me/+other", "Other Channel")
        other = await store.start_contest(
            (await store.create_contest("Other", "Mug", utcnow() + timedelta(days=1), -1002)).id)

        await click(fsm, f"stop_contest {CHAN_ID} {other.id}")

        assert texts.CONTEST_NOT_FOUND in sent_texts(bot)
        assert not (await store.get_contest(other.id)).stopped
        bot.pin_chat_message.assert_not_awaited()


class TestDeleteContest:
    async def test_delete_draft(self, fsm, bot, store, channel):
        contest = await store.create_contest("Draft", "Mug", utcnow() + timedelta(days=1), CHAN_ID)

        await click(fsm, f"delete_contest {CHAN_ID} {contest.id}")

        assert await store.get_contest(contest.id) is None
        assert texts.DELETED in sent_texts(bot)

    async def test_contest_of_another_channel(self, fsm, bot, store, channel):
        await store.create_channel(-1002, OWNER_ID, "https://t.me/+other", "Other Channel")
        other = await store.create_contest("Other", "Mug", utcnow() + timedelta(days=1), -1002)

        await click(fsm, f"delete_contest {CHAN_ID} {other.id}")

        assert texts.CONTEST_NOT_FOUND in sent_texts(bot)
        assert await store.get_contest(other.id) is not None


class TestScenarios:
    async def test_scenario_full_contest(self, fsm, bot, store, channel, users, members):
        """Создание, запуск, два приглашения и остановка конкурса"""
        await click(fsm, f"create {CHAN_ID}")
        end = utcnow() + timedelta(days=1)
        await fsm.handle_text(OWNER_ID, f"August\n{end:%Y-%m-%d %H:%M} +0000\nGift Card")
        contest = (await store.list_contests(CHAN_ID))[0]

        await click(fsm, f"start_contest {CHAN_ID} {contest.id}")
        assert (await store.get_contest(contest.id)).is_running

        await accept(fsm, members, 10, 20, contest.id)
        await accept(fsm, members, 11, 21, contest.id)
        assert await store.count_invitations(contest.id) == 2

        await click(fsm, f"stop_contest {CHAN_ID} {contest.id}")

        assert (await store.get_contest(contest.id)).stopped
        ranking = await store.rank(contest.id)
        assert [(row.rank, row.user.id) for row in ranking] == [(1, 11), (2, 10)]
        leaderboard = next(
            call.args[1] for call in bot.send_message.call_args_list
            if call.args[0] == CHAN_ID and call.args[1].startswith("🏆")
        )
        assert "🥇#1! Bob (@bob) - 1" in leaderboard
        assert "🏆 #2 Alice Smith - 1" in leaderboard

    async def test_scenario_delete_with_participants(self, fsm, bot, store, running_contest, users):
        await store.insert_invitation(10, 20, CHAN_ID, running_contest.id)

        await click(fsm, f"delete_contest {CHAN_ID} {running_contest.id}")

        assert await store.get_contest(running_contest.id) is not None
        assert any(
            text.endswith("You can't delete a contest with participants.") for text in sent_texts(bot)
        )
