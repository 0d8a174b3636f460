"""Tests for the /health endpoint."""

from unittest.mock import AsyncMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dealslist.api.routes.health import router


def _make_app(table=None) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.table = table or AsyncMock()
    return app


class TestHealthRoute:
    def test_health_ok(self):
        mock_table = AsyncMock()
        mock_table.verify_connectivity = AsyncMock(return_value=True)
        client = TestClient(_make_app(mock_table))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_database_down(self):
        mock_table = AsyncMock()
        mock_table.verify_connectivity = AsyncMock(return_value=False)
        client = TestClient(_make_app(mock_table))
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json() == {"status": "unhealthy"}
