from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from .ranking import build_preference_lists, is_recently_matched
from .scoring import INELIGIBLE_SCORE, OPTION_A, OPTION_B, Question, Submission, is_eligible, pair_score

logger = logging.getLogger(__name__)

Marriage = dict[int, "int | None"]


class MarriageInvariantError(RuntimeError):
    pass


@dataclass
class RoundInput:
    submissions: dict[int, Submission]
    questions: dict[int, Question]
    recency: dict[int, set[int]] = field(default_factory=dict)
    shadow_id: int = -1
    cfg: dict[str, Any] = field(default_factory=dict)

    @property
    def min_shared(self) -> int:
        return int(self.cfg.get("MIN_SHARED_ANSWERS", 1))

    @property
    def shadow_threshold(self) -> int:
        return int(self.cfg.get("SHADOW_CANDIDATE_THRESHOLD", 3))

    @property
    def real_users(self) -> list[int]:
        return sorted(uid for uid in self.submissions if uid != self.shadow_id)


def canonical_pair(user_a: int, user_b: int) -> tuple[int, int]:
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def pairs_to_marriage(pairs: list[tuple[int, int]], participants: list[int]) -> Marriage:
    marriage: Marriage = {uid: None for uid in participants}
    for a, b in pairs:
        marriage[a] = b
        marriage[b] = a
    return marriage


def marriage_pairs(marriage: Marriage) -> list[tuple[int, int]]:
    return sorted({canonical_pair(u, v) for u, v in marriage.items() if v is not None})


def validate_marriage(marriage: Marriage, shadow_id: int) -> None:
    claimed_by: dict[int, int] = {}
    for uid, partner in marriage.items():
        if partner is None:
            continue
        if partner == uid:
            raise MarriageInvariantError(f"user {uid} matched to itself")
        if partner not in marriage:
            raise MarriageInvariantError(f"user {uid} matched to unknown user {partner}")
        if marriage[partner] != uid and partner != shadow_id:
            raise MarriageInvariantError(f"asymmetric match {uid}->{partner}->{marriage[partner]}")
        if partner != shadow_id:
            previous = claimed_by.get(partner)
            if previous is not None and previous != uid:
                raise MarriageInvariantError(f"user {partner} claimed by {previous} and {uid}")
            claimed_by[partner] = uid


# --- two-sided deferred acceptance -------------------------------------------


def partition_sides(submissions: dict[int, Submission], shadow_id: int) -> tuple[list[int], list[int]]:
    side_a: list[int] = []
    side_b: list[int] = []
    undecided: list[int] = []
    for uid in sorted(submissions):
        if uid == shadow_id:
            continue
        sub = submissions[uid]
        answer = sub.answers.get(sub.primary_question_id) if sub.primary_question_id is not None else None
        if answer == OPTION_A:
            side_a.append(uid)
        elif answer == OPTION_B:
            side_b.append(uid)
        else:
            undecided.append(uid)

    for uid in undecided:
        if len(side_a) <= len(side_b):
            side_a.append(uid)
        else:
            side_b.append(uid)

    if shadow_id in submissions and len(side_a) != len(side_b):
        if len(side_a) < len(side_b):
            side_a.append(shadow_id)
        else:
            side_b.append(shadow_id)
    return side_a, side_b


def deferred_acceptance(
    proposers: list[int],
    acceptors: list[int],
    prefs: dict[int, list[int]],
) -> Marriage:
    acceptor_rank: dict[int, dict[int, int]] = {
        a: {p: i for i, p in enumerate(prefs.get(a, []))} for a in acceptors
    }

    free = deque(sorted(proposers))
    next_idx = {p: 0 for p in proposers}
    engaged_to: dict[int, int] = {}  # acceptor -> proposer

    while free:
        p = free.popleft()
        plist = prefs.get(p, [])
        if next_idx[p] >= len(plist):
            continue
        a = plist[next_idx[p]]
        next_idx[p] += 1
        ranks = acceptor_rank.get(a)
        if ranks is None or p not in ranks:
            free.append(p)
            continue
        current = engaged_to.get(a)
        if current is None:
            engaged_to[a] = p
        elif ranks[p] < ranks[current]:
            engaged_to[a] = p
            free.append(current)
        else:
            free.append(p)

    pairs = [(p, a) for a, p in engaged_to.items()]
    return pairs_to_marriage(pairs, sorted(proposers) + sorted(acceptors))


# --- pairwise-swap local search ------------------------------------------------


def build_score_matrix(round_input: RoundInput) -> dict[tuple[int, int], float]:
    users = sorted(round_input.submissions)
    subs = round_input.submissions
    shadow_id = round_input.shadow_id
    matrix: dict[tuple[int, int], float] = {}
    for i in range(len(users)):
        for j in range(i + 1, len(users)):
            u, v = users[i], users[j]
            if shadow_id not in (u, v) and is_recently_matched(round_input.recency, u, v):
                continue
            score = pair_score(subs[u], subs[v], round_input.questions, round_input.min_shared)
            if is_eligible(score):
                matrix[(u, v)] = score
    return matrix


def _lookup(matrix: dict[tuple[int, int], float], a: int, b: int) -> float:
    return matrix.get(canonical_pair(a, b), INELIGIBLE_SCORE)


def greedy_pairs(
    matrix: dict[tuple[int, int], float],
    participants: list[int],
    shadow_id: int,
) -> list[tuple[int, int]]:
    committed: set[int] = set()
    pairs: list[tuple[int, int]] = []
    for (u, v), _ in sorted(matrix.items(), key=lambda kv: (-kv[1], kv[0])):
        if shadow_id in (u, v):
            continue
        if u in committed or v in committed:
            continue
        committed.update((u, v))
        pairs.append((u, v))

    leftovers = [uid for uid in participants if uid != shadow_id and uid not in committed]
    if shadow_id in participants and leftovers:
        options = [
            (_lookup(matrix, uid, shadow_id), uid)
            for uid in leftovers
            if is_eligible(_lookup(matrix, uid, shadow_id))
        ]
        if options:
            options.sort(key=lambda x: (-x[0], x[1]))
            pairs.append(canonical_pair(options[0][1], shadow_id))
    return pairs


def improve_by_swaps(
    pairs: list[tuple[int, int]],
    matrix: dict[tuple[int, int], float],
    max_passes: int = 100,
) -> tuple[list[tuple[int, int]], list[float]]:
    """Pairwise re-pairing until a full pass finds nothing better.

    Returns the final pairs and the running total score, recorded once at the
    start and again after every applied swap.
    """
    pairs = list(pairs)
    total = sum(_lookup(matrix, a, b) for a, b in pairs)
    trace = [total]

    for _ in range(max(0, max_passes)):
        dirty = False
        for i in range(len(pairs)):
            for j in range(i + 1, len(pairs)):
                a, b = pairs[i]
                c, d = pairs[j]
                current = _lookup(matrix, a, b) + _lookup(matrix, c, d)
                options = [
                    (_lookup(matrix, a, c) + _lookup(matrix, b, d), (a, c), (b, d)),
                    (_lookup(matrix, a, d) + _lookup(matrix, b, c), (a, d), (b, c)),
                ]
                best = max(options, key=lambda o: o[0])
                if is_eligible(best[0]) and best[0] > current:
                    pairs[i] = canonical_pair(*best[1])
                    pairs[j] = canonical_pair(*best[2])
                    total += best[0] - current
                    trace.append(total)
                    dirty = True
        if not dirty:
            break
    return pairs, trace


# --- strategies ----------------------------------------------------------------


class AssignmentStrategy:
    name = "base"

    def assign(self, round_input: RoundInput) -> Marriage:
        raise NotImplementedError


class StableMatcher(AssignmentStrategy):
    name = "stable"

    def assign(self, round_input: RoundInput) -> Marriage:
        side_a, side_b = partition_sides(round_input.submissions, round_input.shadow_id)
        common = dict(
            shadow_id=round_input.shadow_id,
            min_shared=round_input.min_shared,
            shadow_threshold=round_input.shadow_threshold,
        )
        # A shadow patched into one side is the last resort for everyone opposite it.
        prefs = build_preference_lists(
            side_a,
            round_input.submissions,
            round_input.recency,
            round_input.questions,
            allowed=side_b,
            include_shadow=round_input.shadow_id in side_b,
            **common,
        )
        prefs.update(
            build_preference_lists(
                side_b,
                round_input.submissions,
                round_input.recency,
                round_input.questions,
                allowed=side_a,
                include_shadow=round_input.shadow_id in side_a,
                **common,
            )
        )
        marriage = deferred_acceptance(side_a, side_b, prefs)
        logger.debug("[MATCHING] stable sides a=%s b=%s", len(side_a), len(side_b))
        return marriage


class LocalSearchMatcher(AssignmentStrategy):
    name = "local_search"

    def assign(self, round_input: RoundInput) -> Marriage:
        participants = sorted(round_input.submissions)
        matrix = build_score_matrix(round_input)
        initial = greedy_pairs(matrix, participants, round_input.shadow_id)
        max_passes = int(round_input.cfg.get("LOCAL_SEARCH_MAX_PASSES", 100))
        pairs, trace = improve_by_swaps(initial, matrix, max_passes=max_passes)
        logger.debug(
            "[MATCHING] local search pairs=%s swaps=%s total=%.6f",
            len(pairs),
            len(trace) - 1,
            trace[-1],
        )
        return pairs_to_marriage(pairs, participants)


STRATEGIES: dict[str, type[AssignmentStrategy]] = {
    StableMatcher.name: StableMatcher,
    LocalSearchMatcher.name: LocalSearchMatcher,
}


def is_partition_skewed(round_input: RoundInput) -> bool:
    side_a, side_b = partition_sides(round_input.submissions, round_input.shadow_id)
    a = len([u for u in side_a if u != round_input.shadow_id])
    b = len([u for u in side_b if u != round_input.shadow_id])
    if a + b == 0:
        return False
    share = min(a, b) / float(a + b)
    return share < float(round_input.cfg.get("SKEW_THRESHOLD", 0.25))


def select_strategy(mode: str, round_input: RoundInput) -> AssignmentStrategy:
    mode = (mode or "auto").strip().lower()
    if mode == "auto":
        mode = LocalSearchMatcher.name if is_partition_skewed(round_input) else StableMatcher.name
    strategy_cls = STRATEGIES.get(mode)
    if strategy_cls is None:
        raise ValueError(f"Unknown matching mode: {mode}")
    return strategy_cls()
