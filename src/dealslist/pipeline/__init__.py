"""
Pipeline components for importing deals from mail: text extraction,
sanitizing, inbox polling, model extraction, parsing, deduplication and
persistence.
"""

from .dedup import deal_dedup_key, dedupe_deals
from .extractor import DealExtractionClient, RetryDecision, decide_retry
from .mail_extractor import (
    build_text_message,
    decode_body_data,
    extract_text,
    extract_text_from_message,
)
from .parser import (
    OutputKind,
    ParsedOutput,
    classify_model_output,
    is_system_email,
    parse_deal_response,
)
from .persistence import (
    DealSaver,
    PersistenceGate,
    SaveDealsResult,
    convert_deal_format,
)
from .pipeline import DealImportPipeline, ExtractDealsResult, ImportRunResult
from .poller import InboxPoller, iter_batches
from .sanitizer import sanitize_email_content

__all__ = [
    # Main Pipeline
    'DealImportPipeline',
    'ExtractDealsResult',
    'ImportRunResult',
    # Mail text
    'build_text_message',
    'decode_body_data',
    'extract_text',
    'extract_text_from_message',
    'sanitize_email_content',
    # Polling
    'InboxPoller',
    'iter_batches',
    # Extraction
    'DealExtractionClient',
    'RetryDecision',
    'decide_retry',
    # Parsing
    'OutputKind',
    'ParsedOutput',
    'classify_model_output',
    'is_system_email',
    'parse_deal_response',
    # Dedup
    'deal_dedup_key',
    'dedupe_deals',
    # Persistence
    'DealSaver',
    'PersistenceGate',
    'SaveDealsResult',
    'convert_deal_format',
]
