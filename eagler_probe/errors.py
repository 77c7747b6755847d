"""Probe error taxonomy.

Every failed `ProbeClient.probe` call raises exactly one of the
`ProbeError` subclasses below. `IconError` belongs to the icon collaborator
and is never raised by a probe.
"""

from __future__ import annotations


class ProbeError(RuntimeError):
    """Base class for all probe failures."""


class ProbeTimeoutError(ProbeError):
    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"Connection timed out after {timeout_s:g}s")
        self.timeout_s = timeout_s


class TransportError(ProbeError):
    """Connection-level failure (DNS, refusal, reset, handshake)."""


class ProtocolError(ProbeError):
    """The server sent a message that could not be decoded."""


class PrematureCloseError(ProbeError):
    def __init__(self, code: int | None, reason: str = "") -> None:
        msg = f"Connection closed before receiving data. Code: {code}"
        if reason:
            msg += f", Reason: {reason}"
        super().__init__(msg)
        self.code = code
        self.reason = reason


class IconError(RuntimeError):
    """Icon persistence or conversion failed."""


__all__ = [
    "ProbeError",
    "ProbeTimeoutError",
    "TransportError",
    "ProtocolError",
    "PrematureCloseError",
    "IconError",
]
