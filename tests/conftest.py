"""Shared fixtures: a fake static host/API and an envelope encryptor."""

import base64
import json
import os
import sys
from email.utils import formatdate

import httpx
import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from loguru import logger

from crema_client import CremaClient, SecretProvider
from crema_client.secret import no_prompt, session_store

SECRET = "correct horse battery staple"
SALT = base64.b64encode(b"0123456789abcdef").decode()
ITERATIONS = 1000
T0 = 1_700_000_000.0


def encrypt_value(value, secret=SECRET, salt=SALT, iterations=ITERATIONS) -> dict:
    """Envelope for ``value`` in the snapshot writer's format."""
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=base64.b64decode(salt), iterations=iterations)
    key = kdf.derive(secret.encode("utf-8"))
    nonce = os.urandom(12)
    ciphertext = AESGCM(key).encrypt(nonce, json.dumps(value).encode("utf-8"), None)
    return {"_encrypted": True, "_data": base64.b64encode(nonce + ciphertext).decode("ascii")}


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeHost:
    """MockTransport handler serving one snapshot plus canned API routes."""

    def __init__(self):
        self.snapshot: dict | None = None
        self.last_modified: float | None = None
        self.routes: dict[str, tuple[int, object]] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.routes:
            status, body = self.routes[path]
            return httpx.Response(status, json=body)

        if path.endswith(".json"):
            if self.snapshot is None:
                return httpx.Response(404)
            headers = {}
            if self.last_modified is not None:
                headers["Last-Modified"] = formatdate(self.last_modified, usegmt=True)
            if request.method == "HEAD":
                return httpx.Response(200, headers=headers)
            return httpx.Response(200, json=self.snapshot, headers=headers)

        return httpx.Response(404)

    def count(self, method: str = "GET", suffix: str = ".json") -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path.endswith(suffix))


@pytest.fixture(autouse=True)
def _clear_session_store():
    session_store.clear()
    yield
    session_store.clear()


@pytest.fixture
def envelope():
    return encrypt_value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def make_client(host, clock):
    def factory(**kwargs) -> CremaClient:
        kwargs.setdefault("static_url", "http://static.test")
        kwargs.setdefault("api_url", "http://api.test")
        kwargs.setdefault("page_path", "/tenants/maps/app/index.html")
        kwargs.setdefault("cache_ttl", 3600)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault(
            "secret_provider",
            SecretProvider(retention="none", token_source=None, prompt=no_prompt),
        )
        return CremaClient("maps", transport=httpx.MockTransport(host), **kwargs)

    return factory


@pytest.fixture
def restore_logging():
    yield
    logger.remove()
    logger.add(sys.stderr)
