"""Display text helpers."""

from __future__ import annotations

import re

_COLOR_CODE_RE = re.compile("§[0-9a-fk-or]")


def strip_color_codes(text: str) -> str:
    """Remove Minecraft formatting codes (section sign + code char).

    Example:
        >>> strip_color_codes("§aHello §lWorld§r")
        'Hello World'
    """
    return _COLOR_CODE_RE.sub("", text)


__all__ = ["strip_color_codes"]
