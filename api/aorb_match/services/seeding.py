import random
from collections import Counter
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text

from .scoring import SEEK_COMPLEMENTARY, SEEK_SIMILAR


CLUSTERS = {
    "homebody": {"weight": 0.40, "lean_b": 0.25},
    "adventurer": {"weight": 0.35, "lean_b": 0.75},
    "contrarian": {"weight": 0.25, "lean_b": 0.50},
}

SAMPLE_QUESTIONS = [
    ("Morning person", "Night owl"),
    ("Cats", "Dogs"),
    ("Mountains", "Beach"),
    ("Plan everything", "Improvise"),
    ("Text", "Call"),
    ("Sweet", "Savory"),
    ("Books", "Films"),
    ("City", "Countryside"),
    ("Save", "Spend"),
    ("Early", "Fashionably late"),
]


def _pick_cluster(rng: random.Random) -> str:
    names = list(CLUSTERS.keys())
    weights = [CLUSTERS[n]["weight"] for n in names]
    return rng.choices(names, weights=weights, k=1)[0]


def seed_question_bank(db, n_questions: int = 20) -> list[int]:
    existing = db.execute(text("SELECT id FROM aorb ORDER BY id")).mappings().all()
    ids = [int(r["id"]) for r in existing]
    next_id = (max(ids) + 1) if ids else 1
    while len(ids) < n_questions:
        option_a, option_b = SAMPLE_QUESTIONS[(next_id - 1) % len(SAMPLE_QUESTIONS)]
        db.execute(
            text(
                """
                INSERT INTO aorb (id, context, subtext, option_a, option_b, mean, created_on)
                VALUES (:id, :context, '', :option_a, :option_b, 0.5, :created_on)
                """
            ),
            {
                "id": next_id,
                "context": f"Question {next_id}",
                "option_a": option_a,
                "option_b": option_b,
                "created_on": int(datetime.now(timezone.utc).timestamp()),
            },
        )
        ids.append(next_id)
        next_id += 1
    return ids[:n_questions]


def seed_dummy_data(
    db,
    n_users: int = 100,
    n_questions: int = 20,
    reset: bool = False,
    seed: int = 42,
    clustered: bool = False,
    answer_rate: float = 0.9,
    complementary_rate: float = 0.2,
    shadow_id: int = -1,
) -> dict[str, Any]:
    rng = random.Random(seed)

    if reset:
        db.execute(text("DELETE FROM unmatched_users"))
        db.execute(text("DELETE FROM matched"))
        db.execute(text("DELETE FROM aorb_answers"))
        db.execute(text("DELETE FROM users WHERE id <> :shadow_id"), {"shadow_id": shadow_id})
        db.commit()

    question_ids = seed_question_bank(db, n_questions=n_questions)
    max_user = db.execute(text("SELECT MAX(id) AS id FROM users")).mappings().first()
    start_id = max(0, int(max_user["id"] or 0) if max_user else 0) + 1
    now_epoch = int(datetime.now(timezone.utc).timestamp())

    cluster_counter: Counter[str] = Counter()
    scheme_counter: Counter[str] = Counter()
    answers_written = 0

    for i in range(n_users):
        user_id = start_id + i
        cluster = _pick_cluster(rng) if clustered else "contrarian"
        cluster_counter[cluster] += 1
        scheme = SEEK_COMPLEMENTARY if rng.random() < complementary_rate else SEEK_SIMILAR
        scheme_counter[scheme] += 1
        db.execute(
            text(
                """
                INSERT INTO users (id, name, email, primary_question_id, assoc, created_on)
                VALUES (:id, :name, :email, :primary_question_id, :assoc, :created_on)
                """
            ),
            {
                "id": user_id,
                "name": f"Seed {user_id}",
                "email": f"seed_{seed}_{user_id}@matching.local",
                "primary_question_id": rng.choice(question_ids) if question_ids else None,
                "assoc": scheme,
                "created_on": now_epoch,
            },
        )
        lean_b = CLUSTERS[cluster]["lean_b"]
        rows = []
        for qid in question_ids:
            if rng.random() > answer_rate:
                continue
            rows.append(
                {
                    "user_id": user_id,
                    "question_id": qid,
                    "answer": 1 if rng.random() < lean_b else 0,
                    "answered_on": now_epoch,
                }
            )
        if rows:
            db.execute(
                text(
                    """
                    INSERT INTO aorb_answers (user_id, question_id, answer, answered_on)
                    VALUES (:user_id, :question_id, :answer, :answered_on)
                    """
                ),
                rows,
            )
            answers_written += len(rows)

    db.commit()

    return {
        "users_created": n_users,
        "questions": len(question_ids),
        "answers_written": answers_written,
        "cluster_distribution": dict(cluster_counter),
        "scheme_distribution": dict(scheme_counter),
        "clustered": clustered,
    }
