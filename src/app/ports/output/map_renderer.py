from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.domain.models import GeoBounds, MemberPresence, MarkerStyle


class IMapRenderer(ABC):
    """Port for the map surface member markers are drawn on."""

    @abstractmethod
    def create_marker(self, *, member: MemberPresence, style: MarkerStyle) -> Any:
        """Draw a new marker and return an opaque handle for it."""

    @abstractmethod
    def update_marker(
        self, handle: Any, *, member: MemberPresence, style: MarkerStyle
    ) -> None:
        """Move/restyle an existing marker in place."""

    @abstractmethod
    def remove_marker(self, handle: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def fit_bounds(self, bounds: GeoBounds) -> None:
        raise NotImplementedError
