"""
Inbox poller: unread Gmail messages → sanitized EmailContent.

Fetches at most max_results unread inbox messages per poll and processes
them in fixed-size batches, strictly one message at a time, pausing between
messages and between batches to stay under Gmail's per-user rate limits.

A message is marked read only after its text was extracted, so a failure
leaves it unread for the next poll instead of losing it.
"""

import asyncio
from typing import Awaitable, Callable, Iterator, Sequence

import structlog

from ..clients.gmail_client import GmailClient
from ..errors import GmailError
from ..logging import logging_context
from ..models.email import EmailContent
from .mail_extractor import extract_text_from_message
from .sanitizer import MAX_CONTENT_LENGTH

logger = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_MAX_RESULTS = 50
DEFAULT_BATCH_SIZE = 10
DEFAULT_MESSAGE_DELAY_MS = 100
DEFAULT_BATCH_DELAY_MS = 2000


def iter_batches(ids: Sequence[str], batch_size: int) -> Iterator[list[str]]:
    """Yield consecutive slices of at most batch_size IDs."""
    if batch_size < 1:
        raise ValueError('batch_size must be >= 1')
    for start in range(0, len(ids), batch_size):
        yield list(ids[start:start + batch_size])


class InboxPoller:
    """
    Polls the deals mailbox and returns sanitized message text.

    Usage:
        poller = InboxPoller(gmail_client=GmailClient())
        emails = await poller.poll()
    """

    def __init__(
        self,
        gmail_client: GmailClient,
        max_results: int = DEFAULT_MAX_RESULTS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        message_delay_ms: int = DEFAULT_MESSAGE_DELAY_MS,
        batch_delay_ms: int = DEFAULT_BATCH_DELAY_MS,
        max_content_length: int = MAX_CONTENT_LENGTH,
        sleep: SleepFn = asyncio.sleep,
    ):
        """
        Initialize the poller.

        Args:
            gmail_client: Mail provider (list_unread / get_message / mark_read)
            max_results: Unread messages fetched per poll; the rest wait for the next one
            batch_size: Messages per batch
            message_delay_ms: Pause after each processed message
            batch_delay_ms: Pause between batches (not after the last)
            max_content_length: Cap on sanitized text per message
            sleep: Async sleep used for the pauses
        """
        if batch_size < 1:
            raise ValueError('batch_size must be >= 1')
        self.gmail = gmail_client
        self.max_results = max_results
        self.batch_size = batch_size
        self.message_delay_ms = message_delay_ms
        self.batch_delay_ms = batch_delay_ms
        self.max_content_length = max_content_length
        self._sleep = sleep

    async def poll(self) -> list[EmailContent]:
        """
        Fetch, extract and mark read all unread inbox messages (up to max_results).

        Returns:
            EmailContent per successfully processed message, in batch order
            then intra-batch order

        Raises:
            GmailError: Listing unread messages failed; nothing is returned
        """
        logger.info('inbox_poller.polling', max_results=self.max_results)
        try:
            message_ids = await self.gmail.list_unread(max_results=self.max_results)
        except GmailError:
            logger.exception('inbox_poller.list_failed')
            raise
        message_ids = list(message_ids)[: self.max_results]

        batches = list(iter_batches(message_ids, self.batch_size))
        logger.info(
            'inbox_poller.found_messages',
            message_count=len(message_ids),
            batch_count=len(batches),
        )

        results: list[EmailContent] = []
        for index, batch in enumerate(batches):
            logger.info(
                'inbox_poller.batch_started',
                batch=index + 1,
                of=len(batches),
                size=len(batch),
            )
            results.extend(await self._process_batch(batch))

            if index < len(batches) - 1:
                logger.debug('inbox_poller.batch_delay', delay_ms=self.batch_delay_ms)
                await self._sleep(self.batch_delay_ms / 1000)

        logger.info('inbox_poller.complete', processed=len(results), found=len(message_ids))
        return results

    async def _process_batch(self, message_ids: list[str]) -> list[EmailContent]:
        results: list[EmailContent] = []
        for message_id in message_ids:
            with logging_context(message_id=message_id):
                try:
                    email = await self._fetch_content(message_id)
                except Exception as e:
                    logger.warning(
                        'inbox_poller.message_failed',
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue
                results.append(email)

                # Content is already captured; a failed mark only means a re-read next poll
                try:
                    await self.gmail.mark_read(message_id)
                except Exception as e:
                    logger.warning(
                        'inbox_poller.mark_read_failed',
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue
                await self._sleep(self.message_delay_ms / 1000)
        return results

    async def _fetch_content(self, message_id: str) -> EmailContent:
        message = await self.gmail.get_message(message_id)
        content = extract_text_from_message(message, max_length=self.max_content_length)
        logger.debug('inbox_poller.extracted', preview=content[:300], length=len(content))
        return EmailContent(id=message_id, content=content)
