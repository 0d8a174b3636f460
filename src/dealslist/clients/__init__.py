"""
External service clients for the DealsList pipeline.
"""

from .gmail_client import GmailClient
from .openai_client import OpenAIClient
from .postgres_client import DealsTable

__all__ = [
    'DealsTable',
    'GmailClient',
    'OpenAIClient',
]
