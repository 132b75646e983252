"""Error taxonomy and the Result type returned by external-boundary calls."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import httpx
from pydantic import ValidationError

T = TypeVar("T")


class ErrorKind(str, Enum):
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    UNAVAILABLE = "unavailable"
    STORAGE = "storage"


@dataclass
class Result(Generic[T]):
    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str = "") -> Result[T]:
        return cls(error=error, message=message)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok and self.value is not None else default


class VibecastError(Exception):
    """Base class for errors surfaced to callers."""


class AllProvidersFailedError(VibecastError):
    def __init__(self, failures: list[str]):
        self.failures = failures
        detail = "\n".join(failures) if failures else "no providers configured"
        super().__init__(f"All search providers failed:\n{detail}")


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception raised at a boundary onto an ErrorKind."""
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in (401, 403):
            return ErrorKind.AUTH
        if status == 429:
            return ErrorKind.RATE_LIMITED
        return ErrorKind.UNAVAILABLE
    if isinstance(exc, httpx.HTTPError):
        return ErrorKind.NETWORK
    if isinstance(exc, (ValidationError, KeyError, TypeError, ValueError, json.JSONDecodeError)):
        return ErrorKind.MALFORMED
    if isinstance(exc, sqlite3.Error):
        return ErrorKind.STORAGE
    return ErrorKind.UNAVAILABLE
