"""Id and nonce generation.

Ids only need to be collision-free within one scene's lifetime. Generators are
passed into engine functions explicitly so tests can use a deterministic one.
"""

from __future__ import annotations

import itertools
import secrets
from typing import Protocol

# Renderer seeds/nonces are 31-bit positive integers
_MAX_NONCE = 2**31 - 1


class IdGenerator(Protocol):
    def new_id(self, prefix: str = "") -> str:
        ...

    def new_nonce(self) -> int:
        ...


class RandomIdGenerator:
    """Random url-safe ids, random 31-bit nonces."""

    def new_id(self, prefix: str = "") -> str:
        token = secrets.token_urlsafe(12).replace("-", "").replace("_", "")
        return f"{prefix}{token}"

    def new_nonce(self) -> int:
        return secrets.randbelow(_MAX_NONCE) + 1


class SequentialIdGenerator:
    """Predictable ids (``el_1``, ``el_2``...) and nonces, for tests and replays."""

    def __init__(self, prefix: str = "el_") -> None:
        self._prefix = prefix
        self._ids = itertools.count(1)
        self._nonces = itertools.count(1000)

    def new_id(self, prefix: str = "") -> str:
        return f"{prefix or self._prefix}{next(self._ids)}"

    def new_nonce(self) -> int:
        return next(self._nonces)
