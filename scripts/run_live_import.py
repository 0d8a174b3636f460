#!/usr/bin/env python3
"""
Live import smoke test for the DealsList pipeline.

Polls the configured Gmail inbox for unread mail, extracts deals with
OpenAI and saves them to Postgres: the same path the /api endpoints drive.
Marks polled messages as read, so run it against a test inbox.

Usage:
    python scripts/run_live_import.py [--json-logs]
"""

import asyncio
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / '.env')

from dealslist.clients import DealsTable, GmailClient, OpenAIClient
from dealslist.config import config
from dealslist.logging import configure_logging
from dealslist.pipeline import DealImportPipeline


def print_summary(summary: dict) -> None:
    extraction = summary['extraction']
    save = summary['save']

    print(f"\n{'=' * 70}")
    print("IMPORT SUMMARY")
    print("=" * 70)
    print(f"Run ID: {summary['run_id']}")
    print(f"Emails fetched: {summary['emails_fetched']}")
    print(f"  System emails skipped: {extraction['skipped_system_count']}")
    print(f"  Unparsable responses: {extraction['unparsable_count']}")
    print(f"  Failed extractions: {extraction['failed_count']}")
    print(f"Deals extracted: {extraction['deal_count']} "
          f"({extraction['duplicates_removed']} duplicates removed)")
    print(f"Saved: {save['savedCount']} | Skipped: {save['skippedCount']} | Errors: {save['errorCount']}")
    print(f"Processing time: {summary['processing_time_ms']}ms")
    for stage, ms in summary['stage_timings'].items():
        print(f"  {stage}: {ms}ms")
    for error in extraction['errors']:
        print(f"  ERROR: {error}")


async def main(json_logs: bool = False) -> int:
    configure_logging(json_output=True if json_logs else None)

    missing = config.validate()
    if missing:
        print(f"Missing configuration: {', '.join(missing)}")
        return 1

    table = DealsTable(config.DATABASE_URL, table_name=config.DEALS_TABLE_NAME)
    openai = OpenAIClient(api_key=config.OPENAI_API_KEY, chat_model=config.OPENAI_CHAT_MODEL)
    gmail = GmailClient(
        client_id=config.GMAIL_CLIENT_ID,
        client_secret=config.GMAIL_CLIENT_SECRET,
        refresh_token=config.GMAIL_REFRESH_TOKEN,
        token_uri=config.GMAIL_TOKEN_URI,
    )

    try:
        await table.connect()
        await table.setup_schema()
        print(f"Postgres: connected, table {config.DEALS_TABLE_NAME} ready")

        pipeline = DealImportPipeline.from_clients(openai, table, gmail_client=gmail)
        result = await pipeline.run()

        summary = result.to_dict()
        print_summary(summary)
        print("\nRaw result:")
        print(json.dumps(summary, indent=2, default=str))
        return 0 if result.success else 2
    finally:
        await openai.close()
        await table.close()


if __name__ == '__main__':
    sys.exit(asyncio.run(main(json_logs='--json-logs' in sys.argv[1:])))
