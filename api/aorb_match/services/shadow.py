from __future__ import annotations

import random

from .scoring import OPTION_A, OPTION_B, SEEK_SIMILAR, Question, Submission


def roll_shadow(questions: dict[int, Question], seed: int | str | None = None) -> Submission:
    """Fresh answer vector for the shadow participant.

    Every question is answered, option B drawn with probability equal to the
    population mean, so the shadow overlaps anyone who answered at least one
    question and tracks the population instead of staying static.
    """
    rng = random.Random(seed)
    answers: dict[int, int] = {}
    for qid in sorted(questions):
        mean = min(1.0, max(0.0, float(questions[qid].mean)))
        answers[qid] = OPTION_B if rng.random() < mean else OPTION_A
    return Submission(
        answers=answers,
        primary_question_id=min(questions) if questions else None,
        scheme=SEEK_SIMILAR,
    )


def with_shadow(
    submissions: dict[int, Submission],
    questions: dict[int, Question],
    shadow_id: int,
    seed: int | str | None = None,
) -> dict[int, Submission]:
    out = {uid: sub for uid, sub in submissions.items() if uid != shadow_id}
    out[shadow_id] = roll_shadow(questions, seed=seed)
    return out
