from __future__ import annotations

import math
from dataclasses import dataclass, field

OPTION_A = 0
OPTION_B = 1

SEEK_SIMILAR = "similar"
SEEK_COMPLEMENTARY = "complementary"
SCHEMES = (SEEK_SIMILAR, SEEK_COMPLEMENTARY)

# Pairs scored with this value are never candidates for each other.
INELIGIBLE_SCORE = -math.inf


@dataclass(frozen=True)
class Question:
    id: int
    option_a: str = "A"
    option_b: str = "B"
    mean: float = 0.5

    @property
    def variance(self) -> float:
        return self.mean * (1.0 - self.mean)


@dataclass
class Submission:
    # Unanswered questions are simply missing from ``answers``.
    answers: dict[int, int] = field(default_factory=dict)
    primary_question_id: int | None = None
    scheme: str = SEEK_SIMILAR


def normalize_scheme(value) -> str:
    v = str(value or "").strip().lower()
    if v in {"complementary", "seek-complementary", "seek_complementary", "1"}:
        return SEEK_COMPLEMENTARY
    return SEEK_SIMILAR


def is_eligible(score: float) -> bool:
    return score != INELIGIBLE_SCORE and not math.isnan(score)


def _agrees(a: int, b: int, scheme: str) -> bool:
    if scheme == SEEK_COMPLEMENTARY:
        return a != b
    return a == b


def similarity_score(
    u_answers: dict[int, int],
    v_answers: dict[int, int],
    questions: dict[int, Question],
    scheme: str,
    min_shared: int = 1,
) -> float:
    """Average variance-weighted agreement over the questions both users answered.

    Each shared question adds its variance when the answers pass the agreement
    test of ``scheme`` and subtracts it otherwise, so controversial questions
    (mean near 0.5) dominate and near-unanimous ones barely count. Fewer than
    ``min_shared`` shared answers (never less than one) makes the pair
    ineligible.
    """
    shared = [q for q in u_answers.keys() & v_answers.keys() if q in questions]
    if len(shared) < max(1, min_shared):
        return INELIGIBLE_SCORE

    total = 0.0
    for qid in shared:
        variance = questions[qid].variance
        if _agrees(u_answers[qid], v_answers[qid], scheme):
            total += variance
        else:
            total -= variance
    return total / len(shared)


def score_for(
    subject: Submission,
    candidate: Submission,
    questions: dict[int, Question],
    min_shared: int = 1,
) -> float:
    return similarity_score(subject.answers, candidate.answers, questions, subject.scheme, min_shared)


def pair_score(
    u: Submission,
    v: Submission,
    questions: dict[int, Question],
    min_shared: int = 1,
) -> float:
    # Mean of both directional scores; equals either one when the schemes match.
    forward = score_for(u, v, questions, min_shared)
    if not is_eligible(forward):
        return INELIGIBLE_SCORE
    if u.scheme == v.scheme:
        return forward
    backward = score_for(v, u, questions, min_shared)
    if not is_eligible(backward):
        return INELIGIBLE_SCORE
    return (forward + backward) / 2.0
