"""
Data models for the DealsList pipeline.
"""

from .deal import Deal, DealCategory
from .email import EmailContent, ParsedEmail

__all__ = [
    'Deal',
    'DealCategory',
    'EmailContent',
    'ParsedEmail',
]
