"""Server icon persistence.

Icons arrive as raw 64x64 RGBA pixels. `PngIconWriter` encodes them with
Pillow; `RawIconWriter` stores the bytes untouched as `<name>.rgba`. Which
one is used is decided once, from configuration, by `make_icon_writer`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit

from PIL import Image

from .errors import IconError
from .models.icon import IconFormat, IconInfo
from .models.snapshot import ICON_HEIGHT, ICON_SIZE, ICON_WIDTH

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^\w\s-]")
_SPACE_RE = re.compile(r"\s+")
_FALLBACK_NAME = "server"


def sanitize_icon_name(name: str) -> str:
    """Make `name` safe to use as a file stem.

    Example:
        >>> sanitize_icon_name("My Server! v2")
        'My-Server-v2'
    """
    cleaned = _SPACE_RE.sub("-", _UNSAFE_RE.sub("", name).strip())
    return cleaned or _FALLBACK_NAME


def icon_name_for(target: str, server_name: str | None = None) -> str:
    """Suggested icon name: the server name, else the target host."""
    if server_name and server_name.strip():
        return _SPACE_RE.sub("_", server_name.strip())
    host = urlsplit(target if "://" in target else f"wss://{target}").hostname
    return (host or _FALLBACK_NAME).replace(".", "_")


def _rgba_image(data: bytes) -> Image.Image:
    if len(data) != ICON_SIZE:
        raise IconError(f"Icon must be {ICON_SIZE} bytes, got {len(data)}")
    return Image.frombytes("RGBA", (ICON_WIDTH, ICON_HEIGHT), bytes(data))


class IconWriter(Protocol):
    directory: Path

    def write(self, data: bytes, suggested_name: str) -> IconInfo: ...


class _BaseIconWriter:
    format: IconFormat
    suffix: str

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _target_path(self, suggested_name: str) -> Path:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IconError(f"Cannot create icon directory {self.directory}: {e}") from e
        return self.directory / f"{sanitize_icon_name(suggested_name)}{self.suffix}"

    def write(self, data: bytes, suggested_name: str) -> IconInfo:
        path = self._target_path(suggested_name)
        try:
            self._store(data, path)
        except (OSError, ValueError) as e:
            raise IconError(f"Failed to save icon to {path}: {e}") from e
        logger.debug("Saved %s icon to %s", self.format, path)
        return IconInfo(
            path=path,
            format=self.format,
            width=ICON_WIDTH,
            height=ICON_HEIGHT,
            data=bytes(data),
        )

    def _store(self, data: bytes, path: Path) -> None:
        raise NotImplementedError


class PngIconWriter(_BaseIconWriter):
    format: IconFormat = "png"
    suffix = ".png"

    def _store(self, data: bytes, path: Path) -> None:
        _rgba_image(data).save(path, format="PNG")


class RawIconWriter(_BaseIconWriter):
    format: IconFormat = "rgba"
    suffix = ".rgba"

    def _store(self, data: bytes, path: Path) -> None:
        path.write_bytes(bytes(data))


def make_icon_writer(fmt: str, directory: str | Path) -> IconWriter:
    fmt = (fmt or "png").strip().lower()
    if fmt == "png":
        return PngIconWriter(directory)
    if fmt == "rgba":
        return RawIconWriter(directory)
    raise ValueError(f"Unknown icon format: {fmt!r} (expected 'png' or 'rgba')")


async def persist_icon(writer: IconWriter, data: bytes, suggested_name: str) -> IconInfo:
    """Write an icon off the event loop. Raises IconError on failure."""
    return await asyncio.to_thread(writer.write, data, suggested_name)


def convert_icon_to_png(info: IconInfo, output_path: str | Path) -> Path:
    """Encode a stored icon as PNG at `output_path` and return the path."""
    output_path = Path(output_path)
    if info.format == "png" and info.path == output_path:
        return output_path
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        _rgba_image(info.data).save(output_path, format="PNG")
    except (OSError, ValueError) as e:
        raise IconError(f"Error converting icon to PNG: {e}") from e
    return output_path
