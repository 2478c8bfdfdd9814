from aorb_match.services.scoring import OPTION_A, OPTION_B, SEEK_SIMILAR, Question, Submission
from aorb_match.services.shadow import roll_shadow, with_shadow


def _bank(n: int, mean: float = 0.5):
    return {q: Question(id=q, mean=mean) for q in range(1, n + 1)}


def test_shadow_answers_every_question():
    questions = _bank(12)
    shadow = roll_shadow(questions, seed=3)
    assert set(shadow.answers) == set(questions)
    assert shadow.primary_question_id == 1
    assert shadow.scheme == SEEK_SIMILAR


def test_shadow_is_reproducible_for_a_seed():
    questions = _bank(20)
    assert roll_shadow(questions, seed=11).answers == roll_shadow(questions, seed=11).answers


def test_shadow_follows_population_means():
    assert set(roll_shadow(_bank(10, mean=0.0), seed=1).answers.values()) == {OPTION_A}
    assert set(roll_shadow(_bank(10, mean=1.0), seed=1).answers.values()) == {OPTION_B}


def test_shadow_rerolls_between_rounds():
    questions = _bank(64)
    assert roll_shadow(questions, seed=1).answers != roll_shadow(questions, seed=2).answers


def test_with_shadow_replaces_stale_entry():
    questions = _bank(3)
    subs = {
        1: Submission(answers={1: 0}, primary_question_id=1),
        -1: Submission(answers={}, primary_question_id=None),
    }
    out = with_shadow(subs, questions, -1, seed=5)
    assert set(out) == {1, -1}
    assert out[1] is subs[1]
    assert set(out[-1].answers) == {1, 2, 3}
    assert -1 in subs and subs[-1].answers == {}
