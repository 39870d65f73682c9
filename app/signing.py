"""
HMAC proof-of-possession checks for device secrets.

Devices sign with HMAC-SHA256 keyed by their shared secret and send the
lowercase hex digest. Two payloads are signed:

- login:     f"{device_id}{timestamp}"
- telemetry: f"{sensor}{timestamp}"

No delimiter is used. Both sides must build the payload bit-for-bit the
same, so values are rendered as a JSON client renders them (an integral
number never gets a trailing ".0").
"""

import hashlib
import hmac
import logging
from enum import Enum
from typing import Optional, Union

from app.errors import BadSignatureError, UnknownIdentityError
from app.store import CredentialStore

logger = logging.getLogger(__name__)

Scalar = Union[int, float, str]


class PayloadKind(str, Enum):
    LOGIN = "login"
    TELEMETRY = "telemetry"


def _as_text(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def login_payload(device_id: str, timestamp: Scalar) -> str:
    return f"{device_id}{_as_text(timestamp)}"


def telemetry_payload(sensor: Scalar, timestamp: Scalar) -> str:
    return f"{_as_text(sensor)}{_as_text(timestamp)}"


def compute_signature(secret: bytes, payload: str) -> str:
    """Hex HMAC-SHA256 of payload under secret."""
    return hmac.new(secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_signature(
    store: CredentialStore,
    device_id: str,
    timestamp: Scalar,
    signature: str,
    kind: PayloadKind = PayloadKind.LOGIN,
    value: Optional[Scalar] = None,
) -> None:
    """
    Check a device signature against the secret held for device_id.

    Args:
        store: Credential store holding the device secrets.
        device_id: Claimed identity whose secret keys the HMAC.
        timestamp: Timestamp as sent by the device.
        signature: Hex digest supplied by the device.
        kind: Which canonical payload to rebuild.
        value: Raw sensor value (telemetry only).

    Raises:
        UnknownIdentityError: no secret is provisioned for device_id.
        BadSignatureError: the digest does not match.
    """
    secret = store.get_secret(device_id)
    if secret is None:
        raise UnknownIdentityError(device_id)

    if kind is PayloadKind.TELEMETRY:
        if value is None:
            raise BadSignatureError(device_id)
        payload = telemetry_payload(value, timestamp)
    else:
        payload = login_payload(device_id, timestamp)

    expected = compute_signature(secret, payload)
    if not isinstance(signature, str) or not hmac.compare_digest(
        expected.encode("ascii"), signature.encode("utf-8")
    ):
        raise BadSignatureError(device_id)


def verify(
    store: CredentialStore,
    device_id: str,
    timestamp: Scalar,
    signature: str,
    kind: PayloadKind = PayloadKind.LOGIN,
    value: Optional[Scalar] = None,
) -> bool:
    """Boolean form of verify_signature."""
    try:
        verify_signature(store, device_id, timestamp, signature, kind, value)
    except (UnknownIdentityError, BadSignatureError):
        return False
    return True
