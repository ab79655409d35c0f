from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ApiEnvelope(Generic[T]):
    """Uniform backend response: `success=False` is an application rejection."""

    success: bool
    data: T | None = None
    message: str | None = None
