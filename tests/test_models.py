"""Tests for the Deal and email value objects."""

import pytest
from pydantic import ValidationError

from dealslist.models import Deal, DealCategory, EmailContent, ParsedEmail


class TestDeal:
    def test_accepts_camel_case_wire_format(self):
        deal = Deal.model_validate(
            {
                "expiryDate": "2030-06-30",
                "company": "Coffee Co",
                "description": "20% off",
                "redemptionMethod": "In-store",
                "discountAmount": "20%",
                "additionalInfo": "Terms apply",
                "category": "reward",
            }
        )
        assert deal.expiry_date == "2030-06-30"
        assert deal.redemption_method == "In-store"
        assert deal.category is DealCategory.REWARD

    def test_defaults(self):
        deal = Deal()
        assert deal.company == ""
        assert deal.expiry_date == ""
        assert deal.category is DealCategory.UNIVERSAL

    @pytest.mark.parametrize(
        "value, expected",
        [(None, ""), (20, "20"), (4.5, "4.5"), (True, "true"), ("x", "x")],
    )
    def test_text_coercion(self, value, expected):
        assert Deal.model_validate({"discountAmount": value}).discount_amount == expected

    @pytest.mark.parametrize("value", ["gold", "", None, 3])
    def test_unknown_category_is_universal(self, value):
        assert Deal.model_validate({"category": value}).category is DealCategory.UNIVERSAL

    def test_unknown_keys_ignored(self):
        deal = Deal.model_validate({"company": "A", "storeId": "s1"})
        assert "storeId" not in deal.to_dict()

    def test_to_dict_uses_wire_names(self):
        assert Deal(company="A", discount_amount="5%").to_dict() == {
            "expiryDate": "",
            "company": "A",
            "description": "",
            "redemptionMethod": "",
            "discountAmount": "5%",
            "additionalInfo": "",
            "category": "universal",
        }

    def test_frozen(self):
        deal = Deal(company="A")
        with pytest.raises(ValidationError):
            deal.company = "B"


class TestEmailModels:
    def test_email_content_requires_id(self):
        with pytest.raises(ValidationError):
            EmailContent.model_validate({"content": "x"})

    def test_parsed_email_from_content(self):
        email = EmailContent(id="m1", content="20% off")
        assert ParsedEmail.from_content(email) == ParsedEmail(id="m1", parsed="20% off")

    def test_content_defaults_empty(self):
        assert EmailContent(id="m1").content == ""
