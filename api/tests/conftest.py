import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("STATUS_HEARTBEAT_SECONDS", "0")

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aorb_match.database import init_db
from aorb_match.repo import MatchStore

SHADOW_ID = -1


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return MatchStore(session_factory, shadow_id=SHADOW_ID)


@pytest.fixture
def populate(session_factory):
    """Insert questions ({id: mean}) and users ({id: (primary, assoc, answers)})."""

    def _populate(questions: dict[int, float], users: dict[int, tuple]) -> None:
        with session_factory() as db:
            for qid, mean in questions.items():
                db.execute(
                    text(
                        "INSERT INTO aorb (id, context, subtext, option_a, option_b, mean, created_on) "
                        "VALUES (:id, '', '', 'A', 'B', :mean, 0)"
                    ),
                    {"id": qid, "mean": mean},
                )
            for uid, (primary, assoc, answers) in users.items():
                db.execute(
                    text(
                        "INSERT INTO users (id, name, email, primary_question_id, assoc, created_on) "
                        "VALUES (:id, :name, :email, :primary, :assoc, 0)"
                    ),
                    {"id": uid, "name": f"user {uid}", "email": f"u{uid}@example.com", "primary": primary, "assoc": assoc},
                )
                for qid, answer in answers.items():
                    db.execute(
                        text(
                            "INSERT INTO aorb_answers (user_id, question_id, answer, answered_on) "
                            "VALUES (:user_id, :question_id, :answer, 0)"
                        ),
                        {"user_id": uid, "question_id": qid, "answer": answer},
                    )
            db.commit()

    return _populate


@pytest.fixture
def count_rows(session_factory):
    def _count(table: str) -> int:
        with session_factory() as db:
            return int(db.execute(text(f"SELECT COUNT(1) FROM {table}")).scalar_one())

    return _count
