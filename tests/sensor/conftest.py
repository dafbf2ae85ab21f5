"""Shared fixtures for sensor HTTP tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from honeytrap.sensor.app import app


@pytest.fixture
def client(sensor_env: None) -> Iterator[TestClient]:
    """Test client with the lifespan running (fresh store, hub and devices).

    Entering the client as a context manager keeps one event loop for the
    lifespan, HTTP requests and WebSocket sessions, so hub subscribers and
    publishers share it.
    """
    with TestClient(app) as c:
        yield c
