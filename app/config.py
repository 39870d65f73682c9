"""
Runtime configuration for the relay, read from the environment.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    credential_backend: str = "static"
    device_secrets: Dict[str, str] = field(default_factory=dict)

    notify_bot_name: str = "MySensorBot"
    notify_bot_token: Optional[str] = None
    notify_chat_id: Optional[str] = None
    notify_queue_size: int = 100
    notify_timeout: float = 10.0

    outbound_queue_size: int = 32
    send_timeout: float = 5.0
    idle_timeout: float = 0.0

    default_volt_threshold: float = 1.0
    default_board_id: str = "esp32_1"

    log_level: str = "INFO"


def _parse_device_secrets(raw: str) -> Dict[str, str]:
    # DEVICE_SECRETS is a JSON object: {"esp32_1": "ESP32_1_SECRET", ...}
    if not raw.strip():
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("DEVICE_SECRETS must be a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def get_settings() -> Settings:
    """Build settings from environment variables (with .env already loaded)."""
    return Settings(
        credential_backend=os.getenv("CREDENTIAL_BACKEND", "static").strip().lower(),
        device_secrets=_parse_device_secrets(os.getenv("DEVICE_SECRETS", "")),
        notify_bot_name=os.getenv("NOTIFY_BOT_NAME", "MySensorBot"),
        notify_bot_token=os.getenv("NOTIFY_BOT_TOKEN") or None,
        notify_chat_id=os.getenv("NOTIFY_CHAT_ID") or None,
        notify_queue_size=int(os.getenv("NOTIFY_QUEUE_SIZE", "100")),
        notify_timeout=float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10")),
        outbound_queue_size=int(os.getenv("OUTBOUND_QUEUE_SIZE", "32")),
        send_timeout=float(os.getenv("SEND_TIMEOUT_SECONDS", "5")),
        idle_timeout=float(os.getenv("IDLE_TIMEOUT_SECONDS", "0")),
        default_volt_threshold=float(os.getenv("DEFAULT_VOLT_THRESHOLD", "1.0")),
        default_board_id=os.getenv("DEFAULT_BOARD_ID", "esp32_1"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
