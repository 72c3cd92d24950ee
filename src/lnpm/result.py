"""Success/failure values for per-item outcomes that should not raise."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar, Union

from lnpm.common import console
from lnpm.constants import ExitCodes

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome carrying a value."""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Failed outcome carrying a user-facing message."""
    message: str

    @property
    def ok(self) -> bool:
        return False


Result = Union[Success[T], Failure]


def success(value: T) -> Success[T]:
    return Success(value)


def failure(message: str) -> Failure:
    return Failure(message)


def is_all_success(results: Sequence[Result[T]]) -> bool:
    """Return True when no result in ``results`` is a Failure."""
    return all(result.ok for result in results)


def failures(results: Sequence[Result[T]]) -> List[Failure]:
    return [result for result in results if isinstance(result, Failure)]


def handle_results(results: Sequence[Result[T]]) -> List[T]:
    """Unwrap ``results`` or report every failure and exit.

    Args:
        results: Outcomes in input order.

    Returns:
        list: The unwrapped values, in the same order.

    Raises:
        SystemExit: With ``ExitCodes.FAILURE`` if any result failed.
    """
    failed = failures(results)
    if failed:
        for item in failed:
            console.error(item.message)
        sys.exit(ExitCodes.FAILURE.value)
    return [result.value for result in results if isinstance(result, Success)]
