"""Authentication helpers for TURN long-term credentials."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from typing import Mapping, Optional

from turnrelay.permission import Address

log = logging.getLogger(__name__)


class ExpiredUsernameError(ValueError):
    """Raised when a time-windowed username has expired."""


class AuthHandler:
    """Looks up the key of a user from a fixed credential map."""

    def __init__(self, credentials: Optional[Mapping[str, bytes]] = None) -> None:
        self.credentials = dict(credentials or {})

    def auth_handle(self, username: str, realm: str, src_addr: Address) -> bytes:
        """Return the auth key of ``username``; raise LookupError if unknown."""
        try:
            return bytes(self.credentials[username])
        except KeyError:
            raise LookupError(f"unknown user {username}") from None


def _long_term_credentials(username: str, shared_secret: str) -> str:
    mac = hmac.new(shared_secret.encode(), username.encode(), hashlib.sha1).digest()
    return base64.b64encode(mac).decode("ascii")


def generate_long_term_credentials(shared_secret: str, duration: float) -> tuple[str, str]:
    """Create a username and password valid for ``duration`` seconds from now."""
    username = str(int(time.time() + duration))
    return username, _long_term_credentials(username, shared_secret)


def generate_auth_key(username: str, realm: str, password: str) -> bytes:
    """Return the MD5 key of ``username:realm:password`` used by auth handlers."""
    return hashlib.md5(f"{username}:{realm}:{password}".encode()).digest()


class LongTermAuthHandler(AuthHandler):
    """Validates time-windowed usernames signed with a shared secret."""

    def __init__(self, shared_secret: str) -> None:
        super().__init__()
        self.shared_secret = shared_secret

    def auth_handle(self, username: str, realm: str, src_addr: Address) -> bytes:
        """Return the auth key for a username that has not yet expired."""
        log.debug("Authentication username=%s realm=%s src_addr=%s", username, realm, src_addr)
        if not (username.isascii() and username.isdigit()):
            raise ValueError(f"invalid time-windowed username {username!r}")
        if int(username) < time.time():
            raise ExpiredUsernameError(f"Expired time-windowed username {username}")
        password = _long_term_credentials(username, self.shared_secret)
        return generate_auth_key(username, realm, password)