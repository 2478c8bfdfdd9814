from datetime import datetime
from typing import Any

from .matching import RoundInput, build_score_matrix, partition_sides


def _percentile(values: list[float], p: float) -> float | None:
    if not values:
        return None
    vals = sorted(values)
    if len(vals) == 1:
        return round(vals[0], 6)
    pos = (len(vals) - 1) * p
    lo = int(pos)
    hi = min(lo + 1, len(vals) - 1)
    frac = pos - lo
    v = vals[lo] * (1 - frac) + vals[hi] * frac
    return round(v, 6)


def percentile_summary(values: list[float]) -> dict[str, float | None]:
    return {
        "p10": _percentile(values, 0.10),
        "p25": _percentile(values, 0.25),
        "p50": _percentile(values, 0.50),
        "p75": _percentile(values, 0.75),
        "p90": _percentile(values, 0.90),
    }


def compute_score_report(
    store,
    *,
    now: datetime,
    cfg: dict[str, Any],
    recency_window_days: int,
    min_answered: int,
) -> dict[str, Any]:
    questions = store.fetch_questions()
    submissions = store.fetch_submissions(min_answered=min_answered)
    recency = store.fetch_recency_exclusion(recency_window_days, now)
    round_input = RoundInput(
        submissions=submissions,
        questions=questions,
        recency=recency,
        shadow_id=store.shadow_id,
        cfg=cfg,
    )
    matrix = build_score_matrix(round_input)
    pair_scores = list(matrix.values())

    best_by_user: dict[int, float] = {}
    for (u, v), score in matrix.items():
        best_by_user[u] = max(best_by_user.get(u, score), score)
        best_by_user[v] = max(best_by_user.get(v, score), score)
    best_scores = list(best_by_user.values())
    without_candidates = len([uid for uid in submissions if uid not in best_by_user])

    side_a, side_b = partition_sides(submissions, store.shadow_id)

    return {
        "generated_at": now.isoformat(),
        "eligible_users": len(submissions),
        "questions": len(questions),
        "candidate_pair_count": len(matrix),
        "users_without_candidates": without_candidates,
        "partition": {"side_a": len(side_a), "side_b": len(side_b)},
        "pair_score_distribution": {
            "count": len(pair_scores),
            "percentiles": percentile_summary(pair_scores),
        },
        "per_user_best_distribution": {
            "count": len(best_scores),
            "percentiles": percentile_summary(best_scores),
        },
    }
