"""Logging setup for the bot process.

`setup_logging` installs one stream handler on the root logger, honours
`LOG_LEVEL`, and keeps the transport libraries at WARNING so a probe run
is not drowned in frame traces.
"""
import logging
import os

_QUIET_LOGGERS = ("httpx", "httpcore", "telegram", "websockets")


def setup_logging(debug: bool = False) -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(handler)
    root.setLevel(level)

    # Session tracing (frames, state transitions) is only emitted in debug mode
    if debug:
        logging.getLogger("eagler_probe").setLevel(logging.DEBUG)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["setup_logging"]
