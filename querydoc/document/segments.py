"""Segment types making up a query document."""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass, field, replace
from typing import Union

logger = logging.getLogger(__name__)

SPACER_SIZE = 1
# Tokens span two position units so a cursor can be strictly inside one.
TOKEN_NODE_SIZE = 2

TOKEN_ID_LENGTH = 21
_TOKEN_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_token_id() -> str:
    """Generate a random URL-safe token id."""
    return "".join(secrets.choice(_TOKEN_ID_ALPHABET) for _ in range(TOKEN_ID_LENGTH))


def ensure_token_id(token_id: str | None) -> str:
    """Return ``token_id``, or a fresh id if it is missing."""
    if token_id:
        return token_id
    logger.warning("Token without id encountered, generating a new one")
    return generate_token_id()


@dataclass(frozen=True)
class PlainText:
    """A run of characters outside any token."""

    value: str

    @property
    def size(self) -> int:
        return len(self.value)


@dataclass(frozen=True)
class Spacer:
    """Non-editable marker that gives a token deletable boundaries."""

    @property
    def size(self) -> int:
        return SPACER_SIZE


@dataclass(frozen=True)
class FilterToken:
    """A ``key operator value`` filter."""

    key: str
    operator: str = "is"
    value: str = ""
    id: str = field(default_factory=generate_token_id)
    immutable: bool = False
    invalid: bool = False
    invalid_reason: str | None = None

    @property
    def size(self) -> int:
        return TOKEN_NODE_SIZE


@dataclass(frozen=True)
class FreeTextToken:
    """A span of free text promoted to a token."""

    value: str = ""
    quoted: bool = False
    id: str = field(default_factory=generate_token_id)
    invalid: bool = False
    invalid_reason: str | None = None

    immutable = False

    @property
    def size(self) -> int:
        return TOKEN_NODE_SIZE


Token = Union[FilterToken, FreeTextToken]
Segment = Union[PlainText, Spacer, FilterToken, FreeTextToken]


def is_token(segment: object) -> bool:
    return isinstance(segment, (FilterToken, FreeTextToken))


def is_spacer(segment: object) -> bool:
    return isinstance(segment, Spacer)


def is_text(segment: object) -> bool:
    return isinstance(segment, PlainText)


def is_empty_token(segment: object) -> bool:
    """True for a token whose value is blank."""
    return is_token(segment) and not segment.value.strip()  # type: ignore[union-attr]


def with_attrs(segment: Token, **attrs: object) -> Token:
    """Return a copy of ``segment`` with attributes replaced."""
    return replace(segment, **attrs)
