"""Height oracle interface and the manually advanced reference oracle."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .types import Height


class HeightOracle(ABC):
    @abstractmethod
    def current_height(self) -> Height:
        """Current external height. Never decreases."""


class ManualHeightOracle(HeightOracle):
    """Oracle whose height only moves when advanced explicitly."""

    def __init__(self, height: Height = 0):
        if height < 0:
            raise ValueError("height must be >= 0")
        self._height = height

    def current_height(self) -> Height:
        return self._height

    def advance(self, blocks: int = 1) -> Height:
        if blocks < 0:
            raise ValueError("height cannot move backwards")
        self._height += blocks
        return self._height

    def advance_to(self, height: Height) -> Height:
        if height < self._height:
            raise ValueError(f"height cannot move backwards ({height} < {self._height})")
        self._height = height
        return self._height
