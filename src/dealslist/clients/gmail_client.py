"""
Gmail API client for the deals inbox.

Authenticates with an OAuth2 refresh token (installed-app flow, token
minted once out of band) and exposes the three calls the inbox poller
needs: list unread inbox messages, fetch a full message, mark it read.

googleapiclient is synchronous; every call is pushed to a worker thread
with asyncio.to_thread so the event loop keeps running while Gmail answers.
"""

import asyncio
import os
from typing import Any

import structlog
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..errors import wrap_gmail_error

logger = structlog.get_logger(__name__)

UNREAD_INBOX_QUERY = 'in:inbox is:unread'


class GmailClient:
    """
    Async facade over the Gmail v1 users.messages API.

    Configuration via environment variables:
    - GMAIL_CLIENT_ID / GMAIL_CLIENT_SECRET: OAuth client
    - GMAIL_REFRESH_TOKEN: Long-lived refresh token for the deals mailbox
    - GMAIL_TOKEN_URI: Token endpoint (default: Google's)
    """

    SCOPES = ['https://www.googleapis.com/auth/gmail.modify']

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
        token_uri: str | None = None,
        user_id: str = 'me',
        service: Any = None,
    ):
        """
        Initialize the Gmail client.

        Args:
            client_id: OAuth client ID (defaults to GMAIL_CLIENT_ID env var)
            client_secret: OAuth client secret (defaults to GMAIL_CLIENT_SECRET env var)
            refresh_token: Refresh token (defaults to GMAIL_REFRESH_TOKEN env var)
            token_uri: OAuth token endpoint (defaults to GMAIL_TOKEN_URI env var)
            user_id: Gmail user, 'me' for the authenticated account
            service: Pre-built Gmail API resource (skips credential setup)
        """
        self.user_id = user_id

        if service is not None:
            self.service = service
            return

        refresh_token = refresh_token or os.getenv('GMAIL_REFRESH_TOKEN')
        if not refresh_token:
            raise ValueError('GMAIL_REFRESH_TOKEN environment variable is required')

        credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client_id or os.getenv('GMAIL_CLIENT_ID'),
            client_secret=client_secret or os.getenv('GMAIL_CLIENT_SECRET'),
            token_uri=token_uri or os.getenv('GMAIL_TOKEN_URI', 'https://oauth2.googleapis.com/token'),
            scopes=self.SCOPES,
        )
        self.service = build('gmail', 'v1', credentials=credentials, cache_discovery=False)
        logger.info('gmail_client.initialized', user_id=user_id)

    async def list_unread(self, max_results: int = 50) -> list[str]:
        """
        List IDs of unread inbox messages, newest first.

        Only the first page is read: anything beyond max_results is left
        unread for the next poll.

        Args:
            max_results: Upper bound on returned IDs

        Returns:
            Gmail message IDs
        """
        request = self.service.users().messages().list(
            userId=self.user_id,
            q=UNREAD_INBOX_QUERY,
            maxResults=max_results,
        )
        response = await self._execute(request, operation='list_unread')
        messages = response.get('messages', []) or []
        return [m['id'] for m in messages if m.get('id')][:max_results]

    async def get_message(self, message_id: str) -> dict[str, Any]:
        """
        Fetch a full message resource (headers and MIME part tree).

        Args:
            message_id: Gmail message ID

        Returns:
            Gmail message resource dict
        """
        request = self.service.users().messages().get(
            userId=self.user_id,
            id=message_id,
            format='full',
        )
        return await self._execute(request, operation='get_message', message_id=message_id)

    async def mark_read(self, message_id: str) -> None:
        """Remove the UNREAD label so the message is not picked up again."""
        request = self.service.users().messages().modify(
            userId=self.user_id,
            id=message_id,
            body={'removeLabelIds': ['UNREAD']},
        )
        await self._execute(request, operation='mark_read', message_id=message_id)

    async def _execute(self, request: Any, operation: str, **context: Any) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            raise wrap_gmail_error(e, context={'operation': operation, **context}) from e
