"""Tests for the Gmail client facade (googleapiclient service mocked)."""

from unittest.mock import MagicMock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from dealslist.clients.gmail_client import UNREAD_INBOX_QUERY, GmailClient
from dealslist.errors import GmailError


@pytest.fixture
def service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def gmail(service) -> GmailClient:
    return GmailClient(service=service)


def _messages(service: MagicMock) -> MagicMock:
    return service.users.return_value.messages.return_value


class TestListUnread:
    @pytest.mark.asyncio
    async def test_queries_unread_inbox(self, gmail, service):
        _messages(service).list.return_value.execute.return_value = {
            'messages': [{'id': 'a', 'threadId': 't'}, {'id': 'b', 'threadId': 't'}]
        }

        ids = await gmail.list_unread(max_results=50)

        assert ids == ['a', 'b']
        _messages(service).list.assert_called_once_with(
            userId='me', q=UNREAD_INBOX_QUERY, maxResults=50
        )

    @pytest.mark.asyncio
    async def test_empty_inbox(self, gmail, service):
        _messages(service).list.return_value.execute.return_value = {'resultSizeEstimate': 0}
        assert await gmail.list_unread() == []

    @pytest.mark.asyncio
    async def test_http_error_wrapped(self, gmail, service):
        error = HttpError(httplib2.Response({'status': 401}), b'{"error": "invalid_grant"}')
        _messages(service).list.return_value.execute.side_effect = error

        with pytest.raises(GmailError) as exc_info:
            await gmail.list_unread()

        assert exc_info.value.context['status_code'] == 401
        assert exc_info.value.context['operation'] == 'list_unread'


class TestGetMessage:
    @pytest.mark.asyncio
    async def test_fetches_full_format(self, gmail, service):
        resource = {'id': 'a', 'payload': {}}
        _messages(service).get.return_value.execute.return_value = resource

        assert await gmail.get_message('a') == resource
        _messages(service).get.assert_called_once_with(userId='me', id='a', format='full')


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_removes_unread_label(self, gmail, service):
        _messages(service).modify.return_value.execute.return_value = {}

        await gmail.mark_read('a')

        _messages(service).modify.assert_called_once_with(
            userId='me', id='a', body={'removeLabelIds': ['UNREAD']}
        )


class TestConstruction:
    def test_requires_refresh_token(self, monkeypatch):
        monkeypatch.delenv('GMAIL_REFRESH_TOKEN', raising=False)
        with pytest.raises(ValueError):
            GmailClient(client_id='id', client_secret='secret')

    def test_builds_service_from_refresh_token(self):
        with patch('dealslist.clients.gmail_client.build') as mock_build, patch(
            'dealslist.clients.gmail_client.Credentials'
        ) as mock_credentials:
            client = GmailClient(client_id='id', client_secret='secret', refresh_token='rt')

        kwargs = mock_credentials.call_args.kwargs
        assert kwargs['refresh_token'] == 'rt'
        assert kwargs['scopes'] == GmailClient.SCOPES
        mock_build.assert_called_once_with(
            'gmail', 'v1', credentials=mock_credentials.return_value, cache_discovery=False
        )
        assert client.service is mock_build.return_value
