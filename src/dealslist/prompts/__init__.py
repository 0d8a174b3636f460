"""
LLM prompt templates for the DealsList pipeline.
"""

from .extract_deals import (
    DEAL_EXTRACTION_SYSTEM_PROMPT,
    DEAL_EXTRACTION_USER_PROMPT_TEMPLATE,
    build_extraction_prompt,
)

__all__ = [
    'DEAL_EXTRACTION_SYSTEM_PROMPT',
    'DEAL_EXTRACTION_USER_PROMPT_TEMPLATE',
    'build_extraction_prompt',
]
