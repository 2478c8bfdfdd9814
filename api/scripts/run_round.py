import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from aorb_match.config import (
    DEFAULT_MATCHING_CONFIG,
    MATCH_ALGO_MODE,
    MIN_ANSWERED_FOR_MATCHING,
    RECENCY_WINDOW_DAYS,
    SHADOW_USER_ID,
)
from aorb_match.repo import MatchStore
from aorb_match.services.rounds import run_matching_round


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one matching round now")
    parser.add_argument("--mode", type=str, default=MATCH_ALGO_MODE, choices=["auto", "stable", "local_search"])
    parser.add_argument("--min-answered", type=int, default=MIN_ANSWERED_FOR_MATCHING)
    parser.add_argument("--recency-days", type=int, default=RECENCY_WINDOW_DAYS)
    parser.add_argument("--shadow-seed", type=int, default=None)
    args = parser.parse_args()

    store = MatchStore(shadow_id=SHADOW_USER_ID)
    summary = run_matching_round(
        store,
        datetime.now(timezone.utc),
        mode=args.mode,
        cfg=DEFAULT_MATCHING_CONFIG,
        recency_window_days=args.recency_days,
        min_answered=args.min_answered,
        shadow_seed=args.shadow_seed,
    )
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
