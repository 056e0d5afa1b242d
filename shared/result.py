"""Result helpers for steps that must not abort their caller."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar


T = TypeVar("T")

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Result(Generic[T]):
    """Either a value or the warning recorded when producing it failed."""

    value: Optional[T] = None
    warning: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, warning: str) -> "Result[T]":
        return cls(warning=warning)

    def is_ok(self) -> bool:
        return self.warning is None

    def value_or(self, default: T) -> T:
        if self.warning is not None or self.value is None:
            return default
        return self.value


def best_effort(
    action: Callable[[], T],
    description: str,
    *,
    logger: logging.Logger | None = None,
    warnings: list[str] | None = None,
) -> Result[T]:
    """Run ``action`` and turn any ``Exception`` into a logged warning.

    ``warnings`` collects the warning text when given, so callers can report
    every degraded step at the end of a run.
    """

    try:
        return Result.ok(action())
    except Exception as exc:
        message = f"Failed to {description}: {exc}"
        (logger or _LOGGER).warning(message)
        if warnings is not None:
            warnings.append(message)
        return Result.failed(message)


__all__ = ["Result", "best_effort"]
