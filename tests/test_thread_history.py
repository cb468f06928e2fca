import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from models.slack import BotIdentity
from services.thread_history import ThreadHistoryService
from tests.factories import ThreadHistoryBuilder
from utils.errors import HistoryFetchFailure

THREAD_TS = "1234567890.000000"


class TestLocateConversation:
    """Tests for finding the conversation ID in a thread"""

    @pytest.mark.asyncio
    async def test_thread_without_bot_messages(self, thread_history, slack_service):
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS)
            .add_message("first question")
            .add_message("anyone?", user="U99999")
            .build()
        )

        assert await thread_history.locate_conversation("C12345", THREAD_TS) is None

    @pytest.mark.asyncio
    async def test_finds_embedded_id(self, thread_history, slack_service):
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS)
            .add_message("What is our refund policy?")
            .add_bot_message("Refunds take 5 days.", conversation_id="abc-123")
            .add_message("And for enterprise?")
            .build()
        )

        assert await thread_history.locate_conversation("C12345", THREAD_TS) == "abc-123"
        slack_service.get_thread_replies.assert_called_once_with(
            "C12345", THREAD_TS, limit=50, max_pages=5
        )

    @pytest.mark.asyncio
    async def test_most_recent_bot_message_wins(self, thread_history, slack_service):
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS)
            .add_message("q1")
            .add_bot_message("a1", conversation_id="old-id")
            .add_message("q2")
            .add_bot_message("a2", conversation_id="new-id")
            .build()
        )

        assert await thread_history.locate_conversation("C12345", THREAD_TS) == "new-id"

    @pytest.mark.asyncio
    async def test_untagged_newer_bot_message_is_skipped(
        self, thread_history, slack_service
    ):
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS)
            .add_bot_message("a1", conversation_id="abc-123")
            .add_bot_message("🤔 Thinking...")
            .build()
        )

        assert await thread_history.locate_conversation("C12345", THREAD_TS) == "abc-123"

    @pytest.mark.asyncio
    async def test_other_bots_are_ignored(self, thread_history, slack_service):
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS)
            .add_bot_message("mine", conversation_id="mine-id")
            .add_bot_message(
                "not mine", conversation_id="other-id", bot_id="BOTHER", user="UOTHER"
            )
            .build()
        )

        assert await thread_history.locate_conversation("C12345", THREAD_TS) == "mine-id"

    @pytest.mark.asyncio
    async def test_fetch_failure_means_new_conversation(
        self, thread_history, slack_service
    ):
        slack_service.get_thread_replies.side_effect = HistoryFetchFailure("nope")

        assert await thread_history.locate_conversation("C12345", THREAD_TS) is None

    @pytest.mark.asyncio
    async def test_configured_window_is_forwarded(self, slack_service, bot_identity):
        service = ThreadHistoryService(
            slack_service, bot_identity, history_limit=10, max_pages=2
        )

        await service.locate_conversation("C12345", THREAD_TS)

        slack_service.get_thread_replies.assert_called_once_with(
            "C12345", THREAD_TS, limit=10, max_pages=2
        )


class TestInspectThread:
    """Tests for deriving thread state"""

    @pytest.mark.asyncio
    async def test_root_message_needs_no_history(self, thread_history, slack_service):
        state = await thread_history.inspect_thread("C12345", None, THREAD_TS)

        assert state.is_root_message is True
        assert state.is_thread is False
        assert state.has_prior_bot_reply is False
        slack_service.get_thread_replies.assert_not_called()

    @pytest.mark.asyncio
    async def test_thread_parent_is_root(self, thread_history, slack_service):
        state = await thread_history.inspect_thread("C12345", THREAD_TS, THREAD_TS)

        assert state.is_root_message is True
        assert state.is_thread is True
        slack_service.get_thread_replies.assert_not_called()

    @pytest.mark.asyncio
    async def test_reply_in_active_thread(self, thread_history, slack_service):
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS)
            .add_message("q")
            .add_bot_message("a", conversation_id="abc-123")
            .build()
        )

        state = await thread_history.inspect_thread(
            "C12345", THREAD_TS, "1234567899.000000"
        )

        assert state.is_thread is True
        assert state.is_root_message is False
        assert state.has_prior_bot_reply is True
        assert state.recovered_conversation_id == "abc-123"

    @pytest.mark.asyncio
    async def test_bot_reply_without_id(self, thread_history, slack_service):
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS).add_message("q").add_bot_message("a").build()
        )

        state = await thread_history.inspect_thread(
            "C12345", THREAD_TS, "1234567899.000000"
        )

        assert state.has_prior_bot_reply is True
        assert state.recovered_conversation_id is None

    @pytest.mark.asyncio
    async def test_fetch_failure_means_no_prior_reply(
        self, thread_history, slack_service
    ):
        slack_service.get_thread_replies.side_effect = HistoryFetchFailure("nope")

        state = await thread_history.inspect_thread(
            "C12345", THREAD_TS, "1234567899.000000"
        )

        assert state.has_prior_bot_reply is False
        assert state.recovered_conversation_id is None


class TestUnknownIdentity:
    """Without an identity any bot-posted message counts as ours"""

    @pytest.mark.asyncio
    async def test_any_bot_message_counts(self, slack_service):
        service = ThreadHistoryService(slack_service, BotIdentity())
        slack_service.get_thread_replies.return_value = (
            ThreadHistoryBuilder(THREAD_TS)
            .add_bot_message("a", conversation_id="abc-123", bot_id="BANY", user="UANY")
            .build()
        )

        assert await service.locate_conversation("C12345", THREAD_TS) == "abc-123"
