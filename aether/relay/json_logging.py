import json
from datetime import datetime, timezone

from aether.telemetry.logger import get_logger

logger = get_logger("relay")


def _log_json(event_type: str, data: dict):
    """Log structured JSON event."""
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        **data
    }
    logger.info(json.dumps(entry))


def log_request(client_ip, method, endpoint, status_code, response_time_ms, user_agent):
    """Log HTTP request details."""
    _log_json("http_request", {
        "client_ip": client_ip,
        "method": method,
        "endpoint": endpoint,
        "status_code": status_code,
        "response_time_ms": round(response_time_ms, 2),
        "user_agent": user_agent,
    })


def log_provider_failure(endpoint, reason, latency_ms=None):
    """Log a failed provider call (the reason never contains credentials)."""
    _log_json("provider_failure", {
        "endpoint": endpoint,
        "reason": reason[:300],
        "latency_ms": latency_ms,
    })
