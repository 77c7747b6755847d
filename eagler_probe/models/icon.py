"""Stored icon description."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

IconFormat = Literal["png", "rgba"]


@dataclass(frozen=True)
class IconInfo:
    path: Path
    format: IconFormat
    width: int
    height: int
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)
