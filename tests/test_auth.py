import base64
import hashlib
import time

import pytest

from turnrelay.auth import (
    AuthHandler,
    ExpiredUsernameError,
    LongTermAuthHandler,
    generate_auth_key,
    generate_long_term_credentials,
)

ADDR = ("127.0.0.1", 3478)


def test_generate_auth_key_is_md5_digest_sized():
    key = generate_auth_key("user", "webrtc.rs", "password")
    assert len(key) == hashlib.md5().digest_size


def test_generate_auth_key_depends_on_every_part():
    base = generate_auth_key("user", "webrtc.rs", "password")
    assert generate_auth_key("user", "webrtc.rs", "password") == base
    assert generate_auth_key("other", "webrtc.rs", "password") != base
    assert generate_auth_key("user", "other", "password") != base
    assert generate_auth_key("user", "webrtc.rs", "secret") != base


def test_long_term_credentials_username_is_future_time():
    before = time.time()
    username, credential = generate_long_term_credentials("secret", 60)
    assert int(username) >= int(before + 60)
    assert len(base64.b64decode(credential)) == hashlib.sha1().digest_size


def test_long_term_handler_round_trip():
    username, credential = generate_long_term_credentials("secret", 60)
    handler = LongTermAuthHandler("secret")
    key = handler.auth_handle(username, "webrtc.rs", ADDR)
    assert key == generate_auth_key(username, "webrtc.rs", credential)


def test_long_term_handler_wrong_secret_gives_other_key():
    username, credential = generate_long_term_credentials("secret", 60)
    handler = LongTermAuthHandler("token")
    assert handler.auth_handle(username, "webrtc.rs", ADDR) != generate_auth_key(
        username, "webrtc.rs", credential
    )


def test_long_term_handler_expired():
    handler = LongTermAuthHandler("secret")
    with pytest.raises(ExpiredUsernameError):
        handler.auth_handle("1", "webrtc.rs", ADDR)


def test_long_term_handler_bad_username():
    handler = LongTermAuthHandler("secret")
    with pytest.raises(ValueError):
        handler.auth_handle("user", "webrtc.rs", ADDR)


def test_static_auth_handler():
    key = generate_auth_key("user", "webrtc.rs", "password")
    handler = AuthHandler({"user": key})
    assert handler.auth_handle("user", "webrtc.rs", ADDR) == key
    with pytest.raises(LookupError):
        handler.auth_handle("nobody", "webrtc.rs", ADDR)