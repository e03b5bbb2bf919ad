"""Passphrase acquisition.

Sources are tried in order:

1. the secret retained by the configured store,
2. an externally issued access token,
3. an interactive prompt.

A cancelled prompt yields ``None``. Only prompted secrets are retained.
"""

import asyncio
import getpass
import os
from collections.abc import Awaitable, Callable

from loguru import logger

from crema_client.secret.stores import RetentionPolicy, SecretStore, store_for
from settings import API_TOKEN_ENV, SECRET_RETENTION

TokenSource = Callable[[], str | None]
Prompt = Callable[[], Awaitable[str | None]]


def env_token() -> str | None:
    """Access token from the environment, if any."""
    return os.getenv(API_TOKEN_ENV) or None


async def terminal_prompt() -> str | None:
    """Ask for the passphrase on the terminal without echo."""

    def ask() -> str | None:
        try:
            answer = getpass.getpass("Enter password to decrypt dashboard data: ")
        except (EOFError, KeyboardInterrupt):
            return None
        return answer.strip() or None

    return await asyncio.to_thread(ask)


async def no_prompt() -> str | None:
    """Non-interactive callers: always declines."""
    return None


class SecretProvider:
    """Resolve the decryption passphrase."""

    def __init__(
        self,
        retention: str | RetentionPolicy = SECRET_RETENTION,
        token_source: TokenSource | None = env_token,
        prompt: Prompt | None = terminal_prompt,
        store: SecretStore | None = None,
    ):
        self.store = store if store is not None else store_for(retention)
        self.token_source = token_source
        self.prompt = prompt
        self._lock = asyncio.Lock()

    async def acquire(self) -> str | None:
        """Passphrase, or None if every source came up empty."""
        async with self._lock:
            return await self._acquire()

    async def _acquire(self) -> str | None:
        secret = self.store.get()
        if secret:
            logger.debug("Using retained secret")
            return secret

        if self.token_source is not None:
            token = self.token_source()
            if token:
                logger.debug("Using access token as secret")
                return token

        if self.prompt is None:
            return None

        secret = await self.prompt()
        if not secret:
            logger.info("Secret prompt cancelled")
            return None

        self.store.set(secret)
        return secret

    def forget(self) -> None:
        """Drop the retained secret."""
        self.store.clear()
