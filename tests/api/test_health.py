from __future__ import annotations

from datetime import datetime

import pytest
from httpx import AsyncClient

from blogapi import __version__


@pytest.mark.asyncio
async def test_root_reports_running(api_client: AsyncClient) -> None:
    response = await api_client.get("/")

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["message"] == "Server is running..."
    assert "data" not in payload


@pytest.mark.asyncio
async def test_health_endpoint_returns_status(api_client: AsyncClient) -> None:
    response = await api_client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["version"] == __version__
    datetime.fromisoformat(payload["timestamp"])
