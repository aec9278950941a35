"""Tests that slow collaborators do not stall unrelated requests."""

import asyncio
import time
from unittest.mock import patch

import httpx
from fastapi.testclient import TestClient

from app.services.email import EmailService

SLOW_SEND_SECONDS = 1.5


def slow_deliver(message) -> None:
    time.sleep(SLOW_SEND_SECONDS)


async def register_while_checking_health(app) -> tuple[httpx.Response, httpx.Response, float]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        registration = asyncio.create_task(
            ac.post("/api/1.0/users", json={"username": "user1", "email": "user1@mail.com", "password": "P4ssword"})
        )
        await asyncio.sleep(0.3)
        start = time.perf_counter()
        health = await ac.get("/api/health")
        latency = time.perf_counter() - start
        return await registration, health, latency


def test_slow_email_does_not_block_other_requests(client: TestClient):
    from main import app

    with patch.object(EmailService, "_deliver", side_effect=slow_deliver):
        registration, health, latency = asyncio.run(register_while_checking_health(app))

    assert registration.status_code == 200
    assert health.status_code == 200
    assert latency < SLOW_SEND_SECONDS / 2


def test_slow_reset_email_does_not_block_other_requests(client: TestClient, add_user):
    from main import app

    add_user(email="user1@mail.com")

    async def scenario() -> float:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            reset = asyncio.create_task(ac.post("/api/1.0/password-reset", json={"email": "user1@mail.com"}))
            await asyncio.sleep(0.3)
            start = time.perf_counter()
            await ac.get("/api/health")
            latency = time.perf_counter() - start
            assert (await reset).status_code == 200
            return latency

    with patch.object(EmailService, "_deliver", side_effect=slow_deliver):
        latency = asyncio.run(scenario())

    assert latency < SLOW_SEND_SECONDS / 2
