"""
errors.py
Failure types returned by the workflow layer, and the Outcome wrapper
that carries them back to the UI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class GymError(Exception):
    """Base class for every failure the front desk can show to staff."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GymError):
    def __init__(self, messages: list[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__(" ".join(self.messages))


class StoreError(GymError):
    """The record store rejected a read or write."""


class PartialFailureError(GymError):
    """
    A later write failed after an earlier, dependent write was committed.
    `committed` describes what is already stored (e.g. {"member_id": 7}).
    """

    def __init__(self, message: str, committed: dict[str, Any]):
        super().__init__(message)
        self.committed = committed


class NotFoundError(GymError):
    pass


@dataclass(frozen=True)
class Outcome:
    ok: bool
    value: Any = None
    error: GymError | None = None

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: GymError) -> "Outcome":
        return cls(ok=False, error=error)
