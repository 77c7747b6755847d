"""Dispatch layer: applies rate limiting then calls the real handlers."""

from __future__ import annotations

from .common import rate_limit
from . import meta, status


# Meta
cmd_start = rate_limit(meta.cmd_start, name="start")
cmd_help = rate_limit(meta.cmd_help, name="help")

# Servers
cmd_status = rate_limit(status.cmd_status, name="status")
cmd_icon = rate_limit(status.cmd_icon, name="icon")
cmd_clearcache = rate_limit(status.cmd_clearcache, name="clearcache")
