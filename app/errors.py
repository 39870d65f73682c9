"""
Error taxonomy for the relay.

Authentication failures terminate a login or a WebSocket upgrade.
Everything raised while an authenticated connection streams telemetry
is logged and dropped by the caller; the connection stays open.
"""

from typing import Optional


class RelayError(Exception):
    """Base exception for the relay."""

    def __init__(self, message: str, device_id: Optional[str] = None):
        self.message = message
        self.device_id = device_id
        super().__init__(message)


class AuthenticationError(RelayError):
    """Proof-of-possession of a device secret failed."""


class UnknownIdentityError(AuthenticationError):
    def __init__(self, device_id: Optional[str]):
        super().__init__("Unknown clientId", device_id=device_id)


class BadSignatureError(AuthenticationError):
    def __init__(self, device_id: Optional[str]):
        super().__init__("Invalid signature", device_id=device_id)


class TokenError(RelayError):
    """A session token could not be validated."""


class ExpiredTokenError(TokenError):
    def __init__(self):
        super().__init__("Token expired")


class InvalidTokenError(TokenError):
    def __init__(self, reason: str = "Invalid token"):
        super().__init__(reason)


class MalformedMessageError(RelayError):
    """An inbound frame could not be parsed into the expected message."""


class TargetUnreachableError(RelayError):
    """The forwarding target has no live session."""


class NotificationDeliveryError(RelayError):
    """The notification sink rejected or failed to deliver an alert."""


class CredentialStoreError(RelayError):
    """The credential store could not be reached."""
