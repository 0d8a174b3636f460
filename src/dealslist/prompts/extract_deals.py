"""
Deal extraction prompts for promotional emails.

The model is asked for a bare JSON array rather than structured output:
the response parser in dealslist.pipeline.parser recovers from fences,
stray prose and single objects.
"""


# =============================================================================
# System Prompt
# =============================================================================

DEAL_EXTRACTION_SYSTEM_PROMPT = (
    'You are a helpful assistant that extracts structured deal information '
    'from promotional emails.'
)


# =============================================================================
# User Prompt
# =============================================================================

DEAL_EXTRACTION_USER_PROMPT_TEMPLATE = """
You are a specialized assistant that extracts detailed deal information from promotional emails.
Your task is to parse the provided email content and output ONLY valid JSON with no extra formatting.
The JSON must be an array of deal objects, where each deal object includes exactly the following keys:
- "expiryDate": The expiration date of the deal in ISO 8601 format if mentioned; otherwise, an empty string.
- "company": The normalized name of the company offering the deal.
- "description": A concise summary of the deal offer.
- "redemptionMethod": A clear explanation of how to redeem the deal (e.g., "Redeem via website", "In-store", "Use code XYZ", "Through the app").
- "discountAmount": The discount value (e.g., "20%" or "$5 off"); if not provided, return an empty string.
- "additionalInfo": Any extra details (such as "terms apply"); if none, return an empty string.
- "category": Set to "reward" if the deal is exclusive to rewards members, or "universal" if available to all customers.

Rules:
1. Only include actual deals; ignore generic or non-deal text (disclaimers, unsubscribe info, etc.).
2. Extract deal details even if they are mentioned in the email footer.
3. If multiple expiration dates are present, choose the one that most likely represents the deal's expiration.
4. Remove duplicate deals.
5. If no deals are found, output an empty JSON array: [].
6. Output ONLY the JSON array with no extra text or markdown formatting.

Email content:
{email_content}
"""


def build_extraction_prompt(email_content: str) -> list[dict[str, str]]:
    """
    Build the chat messages for extracting deals from one email.

    Args:
        email_content: Sanitized email text

    Returns:
        List of message dicts for the OpenAI chat API
    """
    return [
        {'role': 'system', 'content': DEAL_EXTRACTION_SYSTEM_PROMPT},
        {
            'role': 'user',
            'content': DEAL_EXTRACTION_USER_PROMPT_TEMPLATE.format(
                email_content=email_content
            ),
        },
    ]
