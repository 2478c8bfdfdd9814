from __future__ import annotations

from typing import Iterable

from .scoring import Question, Submission, is_eligible, score_for


def is_recently_matched(recency: dict[int, set[int]], u: int, v: int) -> bool:
    return v in recency.get(u, set()) or u in recency.get(v, set())


def rank_candidates(
    subject: int,
    submissions: dict[int, Submission],
    recency: dict[int, set[int]],
    questions: dict[int, Question],
    *,
    shadow_id: int,
    allowed: Iterable[int] | None = None,
    min_shared: int = 1,
    shadow_threshold: int = 3,
    include_shadow: bool = False,
) -> list[int]:
    """Eligible candidates for ``subject``, best first.

    Scores use the subject's own association scheme. Exact ties fall back to
    ascending user id. The shadow is never ranked among real users: it goes
    last, and only while the real list is shorter than ``shadow_threshold``
    unless ``include_shadow`` asks for it on every list.
    """
    pool = set(submissions) if allowed is None else set(allowed) & set(submissions)
    pool.discard(subject)
    me = submissions[subject]

    scored: list[tuple[float, int]] = []
    for uid in pool:
        if uid == shadow_id:
            continue
        if subject != shadow_id and is_recently_matched(recency, subject, uid):
            continue
        score = score_for(me, submissions[uid], questions, min_shared)
        if not is_eligible(score):
            continue
        scored.append((score, uid))

    scored.sort(key=lambda x: (-x[0], x[1]))
    ranked = [uid for _, uid in scored]

    if shadow_id in pool and (include_shadow or len(ranked) < shadow_threshold):
        if is_eligible(score_for(me, submissions[shadow_id], questions, min_shared)):
            ranked.append(shadow_id)
    return ranked


def build_preference_lists(
    subjects: Iterable[int],
    submissions: dict[int, Submission],
    recency: dict[int, set[int]],
    questions: dict[int, Question],
    *,
    shadow_id: int,
    allowed: Iterable[int] | None = None,
    min_shared: int = 1,
    shadow_threshold: int = 3,
    include_shadow: bool = False,
) -> dict[int, list[int]]:
    allowed_set = None if allowed is None else set(allowed)
    return {
        uid: rank_candidates(
            uid,
            submissions,
            recency,
            questions,
            shadow_id=shadow_id,
            allowed=allowed_set,
            min_shared=min_shared,
            shadow_threshold=shadow_threshold,
            include_shadow=include_shadow,
        )
        for uid in sorted(subjects)
    }
