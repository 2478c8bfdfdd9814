import json
import os
from typing import Any

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

MATCH_INTERVAL_SECONDS = int(os.getenv("MATCH_INTERVAL_SECONDS", str(24 * 60 * 60)))
MATCH_RETRY_BACKOFF_SECONDS = int(os.getenv("MATCH_RETRY_BACKOFF_SECONDS", "300"))
RECENCY_WINDOW_DAYS = int(os.getenv("RECENCY_WINDOW_DAYS", "28"))
MATCH_ALGO_MODE = os.getenv("MATCH_ALGO_MODE", "auto")
MIN_ANSWERED_FOR_MATCHING = int(os.getenv("MIN_ANSWERED_FOR_MATCHING", "10"))
STATUS_HEARTBEAT_SECONDS = int(os.getenv("STATUS_HEARTBEAT_SECONDS", "3600"))

# Filler participant for the matching core. Not an admin identity.
SHADOW_USER_ID = int(os.getenv("SHADOW_USER_ID", "-1"))

DEFAULT_MATCHING_CONFIG: dict[str, Any] = {
    "MIN_SHARED_ANSWERS": int(os.getenv("MIN_SHARED_ANSWERS", "1")),
    "SHADOW_CANDIDATE_THRESHOLD": int(os.getenv("SHADOW_CANDIDATE_THRESHOLD", "3")),
    "SKEW_THRESHOLD": float(os.getenv("SKEW_THRESHOLD", "0.25")),
    "LOCAL_SEARCH_MAX_PASSES": int(os.getenv("LOCAL_SEARCH_MAX_PASSES", "100")),
}

if os.getenv("MATCHING_CONFIG_JSON"):
    try:
        DEFAULT_MATCHING_CONFIG.update(json.loads(os.getenv("MATCHING_CONFIG_JSON", "{}")))
    except json.JSONDecodeError:
        pass
