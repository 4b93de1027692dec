from __future__ import annotations

import platform
from datetime import datetime, timezone
from typing import Any, Dict

from .config import NewsConfig
from .models import isoformat


def status_report(config: NewsConfig) -> Dict[str, Any]:
    """Liveness summary for health checks. Does not contact the upstream."""
    return {
        "status": "online",
        "timestamp": isoformat(datetime.now(timezone.utc)),
        "token_present": bool(config.token),
        "python_version": platform.python_version(),
        "upstream": config.url,
        "envelope": config.envelope.value,
        "fallback_enabled": config.fallback_enabled,
    }
