from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

import aorb_match.services.rounds as rounds
from aorb_match.services.matching import MarriageInvariantError
from aorb_match.services.state_machine import IDLE, MatchState
from aorb_match.services.trigger import MatchTrigger

T0 = datetime(2026, 4, 6, 8, 0, tzinfo=timezone.utc)
QUESTIONS = {1: 0.5, 2: 0.5, 3: 0.5}
TWO_BY_TWO = {
    1: (1, "similar", {1: 0, 2: 0, 3: 0}),
    2: (1, "similar", {1: 0, 2: 1, 3: 1}),
    3: (1, "similar", {1: 1, 2: 0, 3: 0}),
    4: (1, "similar", {1: 1, 2: 1, 3: 1}),
}


def _run(store, now, mode="stable"):
    return rounds.run_matching_round(
        store,
        now,
        mode=mode,
        cfg={},
        recency_window_days=28,
        min_answered=1,
        shadow_seed=1,
    )


def test_round_pairs_two_by_two_population(store, populate, count_rows):
    populate(QUESTIONS, TWO_BY_TWO)
    summary = _run(store, T0)
    assert summary["strategy"] == "stable"
    assert summary["eligible_users"] == 4
    assert summary["matched_pairs"] == 2
    assert summary["shadow_pairs"] == 0
    assert summary["unmatched_count"] == 0
    assert summary["created_records"] == 4
    assert count_rows("matched") == 4
    assert store.get_match_between_users(1, 3) is not None
    assert store.get_match_between_users(2, 4) is not None


def test_next_round_avoids_recent_partners(store, populate):
    populate(QUESTIONS, TWO_BY_TWO)
    _run(store, T0)
    summary = _run(store, T0 + timedelta(days=1))
    assert summary["matched_pairs"] == 2
    assert store.get_match_between_users(1, 4) is not None
    assert store.get_match_between_users(2, 3) is not None


def test_shadow_fills_uneven_round(store, populate):
    populate(QUESTIONS, {k: v for k, v in TWO_BY_TWO.items() if k in (1, 2, 3)})
    summary = _run(store, T0)
    assert summary["matched_pairs"] == 2
    assert summary["shadow_pairs"] == 1
    assert summary["unmatched_count"] == 0
    assert store.get_match_between_users(1, 3) is not None
    assert store.get_match_between_users(2, -1) is not None


def test_empty_store_round_is_a_no_op(store, count_rows):
    summary = _run(store, T0, mode="auto")
    assert summary["matched_pairs"] == 0
    assert summary["created_records"] == 0
    assert count_rows("matched") == 0
    assert count_rows("users") == 1


def test_persistence_failure_marks_round_failed(store, populate, count_rows, monkeypatch):
    populate(QUESTIONS, TWO_BY_TWO)

    def boom(*args, **kwargs):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(store, "persist_marriage", boom)
    state = MatchState()
    trigger = MatchTrigger(state, lambda now: _run(store, now), interval_seconds=86400, spawn=lambda fn: fn())

    assert trigger.check_and_trigger(T0) is True
    info = state.describe()
    assert info["status"] == IDLE
    assert info["last_completed_at"] is None
    assert info["last_failed_at"] == T0
    assert count_rows("matched") == 0


def test_invalid_marriage_is_never_persisted(store, populate, count_rows, monkeypatch):
    populate(QUESTIONS, TWO_BY_TWO)

    class Broken:
        name = "broken"

        def assign(self, round_input):
            return {1: 2, 2: 3, 3: 2}

    monkeypatch.setattr(rounds, "select_strategy", lambda mode, round_input: Broken())
    with pytest.raises(MarriageInvariantError):
        _run(store, T0)
    assert count_rows("matched") == 0
