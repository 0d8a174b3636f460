"""
Deal import pipeline orchestrator.

Wires the stages behind the import endpoints:

    poll_inbox()     Gmail unread mail → EmailContent[]
    parse_emails()   EmailContent[] → ParsedEmail[] (extract + sanitize)
    extract_deals()  ParsedEmail[] → Deal[] (model call, parse, dedupe)
    save_deals()     Deal[] → saved / skipped / error summary
    run()            all of the above in one call

Everything is sequential: one Gmail call, one model call, one table write
at a time, with pacing between model calls.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable

import structlog

from ..clients.gmail_client import GmailClient
from ..clients.openai_client import OpenAIClient
from ..clients.postgres_client import DealsTable
from ..config import config
from ..errors import PipelineError
from ..logging import PipelineTimer, logging_context
from ..models.deal import Deal
from ..models.email import EmailContent, ParsedEmail
from ..utils import uuid7
from .dedup import dedupe_deals
from .extractor import DealExtractionClient
from .mail_extractor import build_text_message, extract_text_from_message
from .parser import is_system_email, parse_deal_response, strip_code_fences
from .persistence import DealSaver, SaveDealsResult
from .poller import InboxPoller
from .sanitizer import MAX_CONTENT_LENGTH

logger = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_EXTRACTION_DELAY_MS = 1000


# =============================================================================
# Result Models
# =============================================================================


@dataclass
class ExtractDealsResult:
    """Outcome of running deal extraction over a list of emails."""

    deals: list[Deal] = field(default_factory=list)
    processed_ids: list[str] = field(default_factory=list)
    skipped_system_ids: list[str] = field(default_factory=list)
    unparsable_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_before_dedup: int = 0

    @property
    def duplicates_removed(self) -> int:
        return self.total_before_dedup - len(self.deals)

    def to_dict(self) -> dict[str, Any]:
        return {
            'deal_count': len(self.deals),
            'processed_count': len(self.processed_ids),
            'skipped_system_count': len(self.skipped_system_ids),
            'unparsable_count': len(self.unparsable_ids),
            'failed_count': len(self.failed_ids),
            'duplicates_removed': self.duplicates_removed,
            'errors': self.errors,
        }


@dataclass
class ImportRunResult:
    """Aggregate result of one full import run."""

    run_id: str
    emails_fetched: int = 0
    extraction: ExtractDealsResult | None = None
    save: SaveDealsResult | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    processing_time_ms: int | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True when no email failed extraction and no deal failed to save."""
        extraction_ok = self.extraction is None or not self.extraction.failed_ids
        save_ok = self.save is None or self.save.error_count == 0
        return extraction_ok and save_ok

    def to_dict(self) -> dict[str, Any]:
        return {
            'run_id': self.run_id,
            'success': self.success,
            'emails_fetched': self.emails_fetched,
            'extraction': self.extraction.to_dict() if self.extraction else None,
            'save': self.save.to_dict() if self.save else None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'processing_time_ms': self.processing_time_ms,
            'stage_timings': self.stage_timings,
        }


# =============================================================================
# Pipeline
# =============================================================================


class DealImportPipeline:
    """
    Gmail → model → deals table import.

    The poller is optional so the extraction and save stages can run
    without Gmail credentials (e.g. on emails posted to the API).
    """

    def __init__(
        self,
        extraction_client: DealExtractionClient,
        saver: DealSaver,
        poller: InboxPoller | None = None,
        extraction_delay_ms: int = DEFAULT_EXTRACTION_DELAY_MS,
        max_content_length: int = MAX_CONTENT_LENGTH,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.extraction_client = extraction_client
        self.saver = saver
        self.poller = poller
        self.extraction_delay_ms = extraction_delay_ms
        self.max_content_length = max_content_length
        self._sleep = sleep

    @classmethod
    def from_clients(
        cls,
        openai_client: OpenAIClient,
        table: DealsTable,
        gmail_client: GmailClient | None = None,
    ) -> 'DealImportPipeline':
        """Build a pipeline over connected clients, tuned from config."""
        poller = None
        if gmail_client is not None:
            poller = InboxPoller(
                gmail_client,
                max_results=config.POLL_MAX_RESULTS,
                batch_size=config.POLL_BATCH_SIZE,
                message_delay_ms=config.POLL_MESSAGE_DELAY_MS,
                batch_delay_ms=config.POLL_BATCH_DELAY_MS,
                max_content_length=config.MAX_CONTENT_LENGTH,
            )
        extraction_client = DealExtractionClient(
            openai_client,
            max_retries=config.EXTRACTION_MAX_RETRIES,
            temperature=config.OPENAI_TEMPERATURE,
            max_tokens=config.OPENAI_MAX_TOKENS,
            timeout_seconds=config.OPENAI_TIMEOUT_SECONDS,
        )
        return cls(
            extraction_client=extraction_client,
            saver=DealSaver(table),
            poller=poller,
            extraction_delay_ms=config.EXTRACTION_DELAY_MS,
            max_content_length=config.MAX_CONTENT_LENGTH,
        )

    async def poll_inbox(self) -> list[EmailContent]:
        """Fetch unread mail as EmailContent. Raises if Gmail is not configured or listing fails."""
        if self.poller is None:
            raise PipelineError('Gmail inbox poller is not configured')
        return await self.poller.poll()

    def parse_emails(self, emails: Iterable[EmailContent]) -> list[ParsedEmail]:
        """Run posted email text through the same extraction and sanitizing as fetched mail."""
        parsed: list[ParsedEmail] = []
        for email in emails:
            message = build_text_message(email.id, email.content)
            parsed.append(
                ParsedEmail(
                    id=email.id,
                    parsed=extract_text_from_message(message, max_length=self.max_content_length),
                )
            )
        return parsed

    async def extract_deals(self, emails: Iterable[ParsedEmail]) -> ExtractDealsResult:
        """
        Extract deals from each email, then deduplicate across all of them.

        System emails are skipped without a model call. Unparsable model
        output and exhausted retries skip that email only.
        """
        result = ExtractDealsResult()
        collected: list[Deal] = []
        calls_made = 0

        for email in emails:
            with logging_context(message_id=email.id):
                if is_system_email(email.parsed):
                    logger.info('deal_extraction.skipped_system_email')
                    result.skipped_system_ids.append(email.id)
                    continue

                if calls_made > 0:
                    await self._sleep(self.extraction_delay_ms / 1000)
                calls_made += 1

                try:
                    logger.info('deal_extraction.calling_model')
                    output = await self.extraction_client.extract(email.parsed)
                    logger.debug('deal_extraction.raw_output', output=output)
                    deals = parse_deal_response(output)
                except Exception as e:
                    logger.error(
                        'deal_extraction.failed',
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    result.failed_ids.append(email.id)
                    result.errors.append(f'{email.id}: {e}')
                    continue

                if not deals and output.strip() and not _is_empty_array(output):
                    result.unparsable_ids.append(email.id)

                result.processed_ids.append(email.id)
                collected.extend(deals)
                logger.info('deal_extraction.parsed', deal_count=len(deals))

        result.total_before_dedup = len(collected)
        result.deals = dedupe_deals(collected)
        logger.info('deal_extraction.complete', **result.to_dict())
        return result

    async def save_deals(self, deals: Iterable[Deal]) -> SaveDealsResult:
        """Save deals behind the persistence gate."""
        return await self.saver.save_deals(deals)

    async def run(self) -> ImportRunResult:
        """
        Poll the inbox, extract deals and save them.

        Raises:
            GmailError: Listing unread mail failed (nothing is processed)
        """
        run_id = str(uuid7())
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        timer = PipelineTimer()
        result = ImportRunResult(run_id=run_id, started_at=started_at)

        with logging_context(run_id=run_id):
            logger.info('import_run.start')

            with timer.stage('poll'):
                emails = await self.poll_inbox()
            result.emails_fetched = len(emails)

            with timer.stage('extract'):
                result.extraction = await self.extract_deals(
                    ParsedEmail.from_content(e) for e in emails
                )

            with timer.stage('save'):
                result.save = await self.save_deals(result.extraction.deals)

            result.completed_at = datetime.now(timezone.utc)
            result.processing_time_ms = int((time.perf_counter() - start) * 1000)
            result.stage_timings = timer.summary()['stages']

            logger.info(
                'import_run.complete',
                success=result.success,
                emails_fetched=result.emails_fetched,
                deals_saved=result.save.saved_count,
                processing_time_ms=result.processing_time_ms,
            )

        return result


def _is_empty_array(output: str) -> bool:
    """True when the model explicitly answered with no deals ('[]', possibly fenced)."""
    return ''.join(strip_code_fences(output).split()) == '[]'
