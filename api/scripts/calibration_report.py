import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from aorb_match.config import DEFAULT_MATCHING_CONFIG, MIN_ANSWERED_FOR_MATCHING, RECENCY_WINDOW_DAYS, SHADOW_USER_ID
from aorb_match.repo import MatchStore
from aorb_match.services.calibration import compute_score_report


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the score distribution of the current snapshot")
    parser.add_argument("--recency-days", type=int, default=RECENCY_WINDOW_DAYS)
    parser.add_argument("--min-answered", type=int, default=MIN_ANSWERED_FOR_MATCHING)
    args = parser.parse_args()

    report = compute_score_report(
        MatchStore(shadow_id=SHADOW_USER_ID),
        now=datetime.now(timezone.utc),
        cfg=DEFAULT_MATCHING_CONFIG,
        recency_window_days=args.recency_days,
        min_answered=args.min_answered,
    )

    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
