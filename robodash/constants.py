from __future__ import annotations

import logging
import os

DASHBOARD_TITLE = "Acme Robotics Dashboard"

# Credential header attached to every backend call
API_KEY_HEADER = "air-api-key"

# UI refresh cadence for cards reading the polling cache (they re-render only on change)
UI_REFRESH_INTERVAL_S: float = float(os.getenv("ROBODASH_UI_REFRESH_S", "0.25"))

# Idle cache entries (no subscribers) are dropped after this many seconds
CACHE_PRUNE_INTERVAL_S: float = float(os.getenv("ROBODASH_PRUNE_INTERVAL_S", "30"))


def _resolve_log_level(default: int = logging.WARNING) -> int:
    """Level named by ROBODASH_LOG_LEVEL (TRACE..CRITICAL); unset or unknown names keep `default`."""
    name = os.getenv("ROBODASH_LOG_LEVEL", "").strip().upper()
    if name == "TRACE":
        return 5
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


LOG_LEVEL: int = _resolve_log_level()
