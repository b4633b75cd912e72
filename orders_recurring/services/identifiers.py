"""Order identifier generation."""

from __future__ import annotations

import secrets
import string
from typing import Protocol

_LETTERS = string.ascii_lowercase
_ALPHANUMERIC = string.ascii_lowercase + string.digits


class IdentifierGenerator(Protocol):
    """Source of fresh order identifiers."""

    def new_id(self) -> str:
        ...


class RandomIdentifierGenerator:
    """Lowercase alphanumeric ids that always start with a letter.

    Ids starting with a letter are never read as numbers by spreadsheet
    and CSV consumers of the carrier exports.
    """

    def __init__(self, length: int = 12):
        if length < 2:
            raise ValueError(f"length must be >= 2, got {length}")
        self._length = length

    def new_id(self) -> str:
        head = secrets.choice(_LETTERS)
        tail = "".join(secrets.choice(_ALPHANUMERIC) for _ in range(self._length - 1))
        return head + tail


class SequentialIdentifierGenerator:
    """Predictable ids (``ord00001``, ``ord00002``, ...) for tests and replays."""

    def __init__(self, prefix: str = "ord", width: int = 5):
        self._prefix = prefix
        self._width = width
        self._counter = 0

    def new_id(self) -> str:
        self._counter += 1
        return f"{self._prefix}{self._counter:0{self._width}d}"
