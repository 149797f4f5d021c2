"""Tests for request-id logging."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from httpx import AsyncClient
from loguru import logger

from kioskdesk.helpdesk.log import REQUEST_ID_HEADER


@pytest.fixture
def records() -> Iterator[list[tuple[str | None, str]]]:
    """Capture ``(request_id, message)`` for every loguru record."""
    captured: list[tuple[str | None, str]] = []
    sink_id = logger.add(lambda m: captured.append((m.record["extra"].get("request_id"), m.record["message"])))
    yield captured
    logger.remove(sink_id)


async def test_request_id_is_echoed(client: AsyncClient, records: list) -> None:
    resp = await client.get("/api/health", headers={REQUEST_ID_HEADER: "req-42"})

    assert resp.headers[REQUEST_ID_HEADER] == "req-42"
    assert ("req-42", "GET /api/health -> 200") in [(rid, msg.split(" (")[0]) for rid, msg in records]


async def test_request_id_is_generated(client: AsyncClient) -> None:
    first = await client.get("/api/health")
    second = await client.get("/api/health")

    assert first.headers[REQUEST_ID_HEADER]
    assert first.headers[REQUEST_ID_HEADER] != second.headers[REQUEST_ID_HEADER]


async def test_error_responses_carry_request_id(client: AsyncClient, records: list) -> None:
    resp = await client.get("/api/workspaces/list", headers={REQUEST_ID_HEADER: "req-401"})

    assert resp.status_code == 401
    assert resp.headers[REQUEST_ID_HEADER] == "req-401"
    assert any(rid == "req-401" and "-> 401" in msg for rid, msg in records)
