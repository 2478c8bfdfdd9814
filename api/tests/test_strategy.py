import pytest

from aorb_match.services.matching import (
    LocalSearchMatcher,
    MarriageInvariantError,
    RoundInput,
    StableMatcher,
    is_partition_skewed,
    marriage_pairs,
    select_strategy,
    validate_marriage,
)
from aorb_match.services.scoring import Question, Submission

SHADOW = -1


def _round(primary_answers: list[int]) -> RoundInput:
    questions = {1: Question(id=1, mean=0.5)}
    subs = {
        uid: Submission(answers={1: answer}, primary_question_id=1)
        for uid, answer in enumerate(primary_answers, start=1)
    }
    return RoundInput(submissions=subs, questions=questions, cfg={"SKEW_THRESHOLD": 0.25})


def test_explicit_modes():
    r = _round([0, 1])
    assert isinstance(select_strategy("stable", r), StableMatcher)
    assert isinstance(select_strategy("local_search", r), LocalSearchMatcher)
    assert isinstance(select_strategy(" Stable ", r), StableMatcher)


def test_auto_prefers_stable_for_balanced_sides():
    r = _round([0, 0, 1, 1])
    assert is_partition_skewed(r) is False
    assert select_strategy("auto", r).name == "stable"


def test_auto_switches_to_local_search_when_skewed():
    r = _round([0, 0, 0, 0, 0, 1])
    assert is_partition_skewed(r) is True
    assert select_strategy("auto", r).name == "local_search"


def test_auto_with_no_users_is_stable():
    r = RoundInput(submissions={}, questions={})
    assert select_strategy("auto", r).name == "stable"


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        select_strategy("hungarian", _round([0, 1]))


def test_validate_accepts_symmetric_marriage():
    validate_marriage({1: 2, 2: 1, 3: None}, SHADOW)
    validate_marriage({1: SHADOW, SHADOW: 1}, SHADOW)
    assert marriage_pairs({1: 2, 2: 1, 3: None}) == [(1, 2)]


def test_validate_allows_shadow_to_absorb():
    validate_marriage({1: SHADOW, 2: SHADOW, SHADOW: 1}, SHADOW)


@pytest.mark.parametrize(
    "marriage",
    [
        {1: 1},
        {1: 2, 2: None},
        {1: 9},
        {1: 3, 2: 3, 3: 1},
    ],
)
def test_validate_rejects_broken_marriages(marriage):
    with pytest.raises(MarriageInvariantError):
        validate_marriage(marriage, SHADOW)
