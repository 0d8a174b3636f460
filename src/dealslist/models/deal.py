"""
Deal value object extracted from promotional emails.

A Deal is what the extraction model returns for each offer it finds in one
email. Attributes are snake_case in Python and camelCase on the wire
(`expiryDate`, `redemptionMethod`, ...), matching the JSON contract the
prompt asks the model for and the payloads of the HTTP API.

Model output is untrusted: every text field accepts None, numbers or
missing keys and normalizes them to a string (empty when absent), so no
null ever reaches the deals table.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DealCategory(str, Enum):
    """Who can redeem a deal."""

    REWARD = 'reward'  # Exclusive to rewards members
    UNIVERSAL = 'universal'  # Available to all customers


def _coerce_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return str(value)
    # Nested lists/objects are flattened to their string form
    return str(value)


class Deal(BaseModel):
    """A single promotional offer extracted from an email."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra='ignore',
    )

    expiry_date: str = Field(
        default='', description='Expiration date in ISO 8601, or empty string'
    )
    company: str = Field(default='', description='Normalized company name')
    description: str = Field(default='', description='Concise summary of the offer')
    redemption_method: str = Field(
        default='', description='How to redeem (website, in-store, code, app)'
    )
    discount_amount: str = Field(
        default='', description='Discount value, e.g. "20%" or "$5 off"'
    )
    additional_info: str = Field(default='', description='Extra details such as terms')
    category: DealCategory = Field(
        default=DealCategory.UNIVERSAL,
        description='reward (members only) or universal',
    )

    @field_validator(
        'expiry_date',
        'company',
        'description',
        'redemption_method',
        'discount_amount',
        'additional_info',
        mode='before',
    )
    @classmethod
    def _text_field(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator('category', mode='before')
    @classmethod
    def _category_field(cls, value: Any) -> DealCategory:
        if isinstance(value, DealCategory):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for category in DealCategory:
                if category.value == normalized:
                    return category
        return DealCategory.UNIVERSAL

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys for the API and storage layer."""
        return self.model_dump(by_alias=True, mode='json')
