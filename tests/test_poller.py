"""
Tests for the inbox poller.

Tests cover:
- batching (25 messages → 10, 10, 5) and output order
- pacing: per-message delay, batch delay only between batches
- per-message failures skipped and never marked read
- mark-read failures keep the extracted record
- list failures propagate
"""

from unittest.mock import AsyncMock, call

import pytest

from conftest import gmail_message, text_part
from dealslist.errors import GmailError
from dealslist.models.email import EmailContent
from dealslist.pipeline.poller import InboxPoller, iter_batches


def _gmail(ids: list[str], failing: set[str] | None = None) -> AsyncMock:
    failing = failing or set()
    gmail = AsyncMock()
    gmail.list_unread = AsyncMock(return_value=ids)

    async def get_message(message_id):
        if message_id in failing:
            raise GmailError(f'cannot fetch {message_id}')
        return gmail_message(message_id, text_part(f'Deal text for {message_id}'))

    gmail.get_message = AsyncMock(side_effect=get_message)
    gmail.mark_read = AsyncMock(return_value=None)
    return gmail


class TestIterBatches:
    def test_partitions_in_order(self):
        ids = [str(i) for i in range(25)]
        batches = list(iter_batches(ids, 10))
        assert [len(b) for b in batches] == [10, 10, 5]
        assert [i for b in batches for i in b] == ids

    def test_empty(self):
        assert list(iter_batches([], 10)) == []

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            list(iter_batches(['a'], 0))


class TestInboxPoller:
    @pytest.mark.asyncio
    async def test_processes_all_messages_in_order(self, no_sleep):
        ids = [f'm{i}' for i in range(25)]
        gmail = _gmail(ids)
        poller = InboxPoller(gmail, sleep=no_sleep)

        emails = await poller.poll()

        assert [e.id for e in emails] == ids
        assert emails[0] == EmailContent(id='m0', content='Deal text for m0')
        gmail.list_unread.assert_awaited_once_with(max_results=50)
        assert gmail.mark_read.await_args_list == [call(i) for i in ids]

    @pytest.mark.asyncio
    async def test_delays_between_messages_and_batches(self, no_sleep):
        ids = [f'm{i}' for i in range(25)]
        poller = InboxPoller(_gmail(ids), sleep=no_sleep)

        await poller.poll()

        delays = [c.args[0] for c in no_sleep.await_args_list]
        assert delays.count(0.1) == 25
        assert delays.count(2.0) == 2
        # No batch delay after the final batch
        assert delays[-1] == 0.1
        # Batch delays follow the 10th and 20th message
        assert delays[10] == 2.0
        assert delays[21] == 2.0

    @pytest.mark.asyncio
    async def test_single_batch_has_no_batch_delay(self, no_sleep):
        poller = InboxPoller(_gmail(['a', 'b']), sleep=no_sleep)
        await poller.poll()
        assert [c.args[0] for c in no_sleep.await_args_list] == [0.1, 0.1]

    @pytest.mark.asyncio
    async def test_failed_message_skipped_and_not_marked_read(self, no_sleep):
        gmail = _gmail(['a', 'b', 'c'], failing={'b'})
        poller = InboxPoller(gmail, sleep=no_sleep)

        emails = await poller.poll()

        assert [e.id for e in emails] == ['a', 'c']
        assert call('b') not in gmail.mark_read.await_args_list
        assert gmail.mark_read.await_count == 2

    @pytest.mark.asyncio
    async def test_mark_read_failure_keeps_record(self, no_sleep):
        gmail = _gmail(['a', 'b'])
        gmail.mark_read = AsyncMock(side_effect=[GmailError('quota'), None])
        poller = InboxPoller(gmail, sleep=no_sleep)

        emails = await poller.poll()

        assert [e.id for e in emails] == ['a', 'b']

    @pytest.mark.asyncio
    async def test_list_failure_propagates(self, no_sleep):
        gmail = _gmail([])
        gmail.list_unread = AsyncMock(side_effect=GmailError('auth failed'))
        poller = InboxPoller(gmail, sleep=no_sleep)

        with pytest.raises(GmailError):
            await poller.poll()
        gmail.get_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_inbox(self, no_sleep):
        poller = InboxPoller(_gmail([]), sleep=no_sleep)
        assert await poller.poll() == []
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_caps_ids_at_max_results(self, no_sleep):
        gmail = _gmail([f'm{i}' for i in range(8)])
        poller = InboxPoller(gmail, max_results=5, batch_size=2, sleep=no_sleep)

        emails = await poller.poll()

        assert len(emails) == 5
        gmail.list_unread.assert_awaited_once_with(max_results=5)

    @pytest.mark.asyncio
    async def test_content_is_truncated(self, no_sleep):
        gmail = _gmail(['a'])
        poller = InboxPoller(gmail, max_content_length=4, sleep=no_sleep)
        emails = await poller.poll()
        assert emails[0].content == 'Deal'

    def test_rejects_non_positive_batch_size(self):
        with pytest.raises(ValueError):
            InboxPoller(AsyncMock(), batch_size=0)
