"""
Device secrets and signing helpers shared by the tests.
"""

from app.signing import compute_signature

DEVICE_SECRETS = {
    "A": "ESP32_A_SECRET",
    "B": "ESP32_B_SECRET",
    "C": "ESP32_C_SECRET",
}


def sign(device_id: str, payload: str) -> str:
    """Sign payload the way the board firmware does."""
    return compute_signature(DEVICE_SECRETS[device_id].encode("utf-8"), payload)
