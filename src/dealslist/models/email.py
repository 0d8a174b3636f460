"""
Email value objects passed between pipeline stages.

RawMessage (the Gmail API message resource) stays a plain dict owned by the
mail provider; these models hold the sanitized text derived from it.
"""

from pydantic import BaseModel, ConfigDict, Field


class EmailContent(BaseModel):
    """Sanitized plain text of one Gmail message, as produced by the inbox poller."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description='Gmail message ID')
    content: str = Field(default='', description='Sanitized plain text')


class ParsedEmail(BaseModel):
    """Sanitized email text handed to the deal extraction stage."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description='Gmail message ID')
    parsed: str = Field(default='', description='Sanitized plain text')

    @classmethod
    def from_content(cls, email: EmailContent) -> 'ParsedEmail':
        return cls(id=email.id, parsed=email.content)
