from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from .matching import RoundInput, marriage_pairs, select_strategy, validate_marriage
from .shadow import with_shadow

logger = logging.getLogger(__name__)


def run_matching_round(
    store,
    now: datetime,
    *,
    mode: str,
    cfg: dict[str, Any],
    recency_window_days: int,
    min_answered: int,
    shadow_seed: int | str | None = None,
) -> dict[str, Any]:
    """One full round: snapshot, assign, validate, persist.

    Any exception (persistence included) propagates so the caller can mark
    the round as failed; nothing is written unless the whole marriage is.
    """
    shadow_id = store.shadow_id
    store.ensure_shadow_user()
    store.refresh_question_means()
    questions = store.fetch_questions()
    submissions = store.fetch_submissions(min_answered=min_answered)
    recency = store.fetch_recency_exclusion(recency_window_days, now)

    seed = shadow_seed if shadow_seed is not None else int(now.timestamp())
    participants = with_shadow(submissions, questions, shadow_id, seed=seed) if questions else dict(submissions)

    round_input = RoundInput(
        submissions=participants,
        questions=questions,
        recency=recency,
        shadow_id=shadow_id,
        cfg=cfg,
    )
    strategy = select_strategy(mode, round_input)
    logger.info(
        "[MATCHING] round start users=%s questions=%s strategy=%s",
        len(submissions),
        len(questions),
        strategy.name,
    )

    marriage = strategy.assign(round_input)
    validate_marriage(marriage, shadow_id)

    created = store.persist_marriage(marriage, matched_at=now)
    pairs = marriage_pairs(marriage)
    unmatched = sorted(uid for uid, partner in marriage.items() if partner is None and uid != shadow_id)
    summary = {
        "started_at": now.isoformat(),
        "strategy": strategy.name,
        "eligible_users": len(submissions),
        "matched_pairs": len(pairs),
        "shadow_pairs": len([p for p in pairs if shadow_id in p]),
        "unmatched_count": len(unmatched),
        "created_records": created,
    }
    logger.info(
        "[MATCHING] round finished pairs=%s unmatched=%s records=%s",
        summary["matched_pairs"],
        summary["unmatched_count"],
        summary["created_records"],
    )
    return summary
