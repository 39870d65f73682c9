"""
Shared fixtures: a relay app backed by a static secret table.
"""

from typing import Any, Callable, Dict, Optional, Union

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.store import StaticCredentialStore
from tests.helpers import DEVICE_SECRETS, sign


@pytest.fixture
def store() -> StaticCredentialStore:
    return StaticCredentialStore(DEVICE_SECRETS)


@pytest.fixture
def client(store):
    app = create_app(Settings(), store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login_token(client) -> Callable[[str], str]:
    """Log a device in over HTTP and return its session token."""

    def _login(device_id: str, timestamp: str = "1700000000") -> str:
        response = client.post(
            "/login",
            json={
                "clientId": device_id,
                "signature": sign(device_id, f"{device_id}{timestamp}"),
                "timestamp": timestamp,
            },
        )
        assert response.status_code == 200
        return response.json()["token"]

    return _login


@pytest.fixture
def telemetry() -> Callable[..., Dict[str, Any]]:
    """Build a telemetry frame signed with the sender's secret."""

    def _telemetry(
        device_id: str,
        sensor: Union[int, float, str],
        timestamp: str,
        target_id: Optional[str] = None,
        board_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        frame = {
            "sensor": sensor,
            "timestamp": timestamp,
            "signature": sign(device_id, f"{sensor}{timestamp}"),
            "boardId": board_id or device_id,
        }
        if target_id is not None:
            frame["targetId"] = target_id
        return frame

    return _telemetry
