"""
DealsList

Admin service for promotional deal records, with a pipeline that imports
deals from a Gmail inbox using an OpenAI chat model for extraction.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    DealImportPipeline,
    ImportRunResult,
    ExtractDealsResult,
    DealExtractionClient,
    DealSaver,
    InboxPoller,
    PersistenceGate,
    SaveDealsResult,
)
from .repository import DealRepository
from .models import Deal, DealCategory, EmailContent, ParsedEmail
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    PipelineTimer,
)
from .errors import (
    DealsListError,
    ClientError,
    OpenAIError,
    OpenAIRateLimitError,
    GmailError,
    StorageError,
    PipelineError,
    ValidationError,
)

__all__ = [
    # Version
    '__version__',
    # Main Pipeline
    'DealImportPipeline',
    'ImportRunResult',
    'ExtractDealsResult',
    # Components
    'DealExtractionClient',
    'DealSaver',
    'InboxPoller',
    'PersistenceGate',
    'SaveDealsResult',
    # Repository
    'DealRepository',
    # Models
    'Deal',
    'DealCategory',
    'EmailContent',
    'ParsedEmail',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'DealsListError',
    'ClientError',
    'OpenAIError',
    'OpenAIRateLimitError',
    'GmailError',
    'StorageError',
    'PipelineError',
    'ValidationError',
]
