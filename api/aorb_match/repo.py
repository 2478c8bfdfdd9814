from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .database import SessionLocal
from .services.matching import Marriage, marriage_pairs
from .services.scoring import Question, Submission, normalize_scheme

logger = logging.getLogger(__name__)


def _epoch(value: datetime) -> int:
    return int(value.timestamp())


class MatchStore:
    def __init__(self, session_factory=None, *, shadow_id: int = -1) -> None:
        self._session_factory = session_factory or SessionLocal
        self.shadow_id = shadow_id

    def ensure_shadow_user(self) -> None:
        with self._session_factory() as db:
            exists = db.execute(text("SELECT 1 FROM users WHERE id = :id"), {"id": self.shadow_id}).first()
            if exists:
                return
            db.execute(
                text(
                    """
                    INSERT INTO users (id, name, email, primary_question_id, assoc, created_on)
                    VALUES (:id, 'shadow', :email, NULL, 'similar', 0)
                    """
                ),
                {"id": self.shadow_id, "email": f"shadow+{self.shadow_id}@matching.local"},
            )
            db.commit()
            logger.info("[STORE] created shadow user id=%s", self.shadow_id)

    def fetch_questions(self) -> dict[int, Question]:
        with self._session_factory() as db:
            rows = db.execute(text("SELECT id, option_a, option_b, mean FROM aorb ORDER BY id")).mappings().all()
        return {
            int(r["id"]): Question(
                id=int(r["id"]),
                option_a=str(r["option_a"]),
                option_b=str(r["option_b"]),
                mean=float(r["mean"] if r["mean"] is not None else 0.5),
            )
            for r in rows
        }

    def fetch_submissions(self, min_answered: int = 1) -> dict[int, Submission]:
        with self._session_factory() as db:
            users = db.execute(
                text(
                    """
                    SELECT u.id, u.primary_question_id, u.assoc
                    FROM users u
                    WHERE u.id <> :shadow_id
                      AND (SELECT COUNT(1) FROM aorb_answers a WHERE a.user_id = u.id) >= :min_answered
                    ORDER BY u.id
                    """
                ),
                {"shadow_id": self.shadow_id, "min_answered": max(1, int(min_answered))},
            ).mappings().all()
            answers = db.execute(
                text(
                    """
                    SELECT user_id, question_id, answer
                    FROM aorb_answers
                    WHERE user_id <> :shadow_id
                    """
                ),
                {"shadow_id": self.shadow_id},
            ).mappings().all()
            first_question = db.execute(text("SELECT MIN(id) AS id FROM aorb")).mappings().first()

        default_primary = first_question["id"] if first_question and first_question["id"] is not None else None
        submissions: dict[int, Submission] = {
            int(r["id"]): Submission(
                answers={},
                primary_question_id=int(r["primary_question_id"]) if r["primary_question_id"] is not None else default_primary,
                scheme=normalize_scheme(r["assoc"]),
            )
            for r in users
        }
        for r in answers:
            sub = submissions.get(int(r["user_id"]))
            if sub is None:
                continue
            if int(r["answer"]) not in (0, 1):
                continue
            sub.answers[int(r["question_id"])] = int(r["answer"])
        return submissions

    def fetch_recency_exclusion(self, window_days: int, now: datetime) -> dict[int, set[int]]:
        since = now - timedelta(days=window_days)
        with self._session_factory() as db:
            rows = db.execute(
                text(
                    """
                    SELECT user_id, target_id
                    FROM matched
                    WHERE matched_on > :since
                    """
                ),
                {"since": _epoch(since)},
            ).mappings().all()
        recency: dict[int, set[int]] = {}
        for r in rows:
            u, v = int(r["user_id"]), int(r["target_id"])
            recency.setdefault(u, set()).add(v)
            recency.setdefault(v, set()).add(u)
        return recency

    def persist_marriage(self, marriage: Marriage, matched_at: datetime) -> int:
        """Write every pair of the round as two MatchRecord rows, all or nothing."""
        pairs = marriage_pairs(marriage)
        records = [
            {"user_id": uid, "target_id": tid, "matched_on": _epoch(matched_at)}
            for a, b in pairs
            for uid, tid in ((a, b), (b, a))
        ]
        matched = {uid for pair in pairs for uid in pair}
        unmatched = sorted(uid for uid in marriage if uid != self.shadow_id and uid not in matched)

        with self._session_factory() as db:
            try:
                if records:
                    db.execute(
                        text(
                            """
                            INSERT INTO matched (user_id, target_id, matched_on)
                            VALUES (:user_id, :target_id, :matched_on)
                            """
                        ),
                        records,
                    )
                self._write_unmatched(db, matched, unmatched, matched_at)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.error("[STORE] persist_marriage rolled back pairs=%s", len(pairs))
                raise
        return len(records)

    def _write_unmatched(self, db, matched: set[int], unmatched: list[int], matched_at: datetime) -> None:
        for uid in sorted(matched):
            db.execute(text("DELETE FROM unmatched_users WHERE user_id = :user_id"), {"user_id": uid})
        for uid in unmatched:
            exists = db.execute(
                text("SELECT 1 FROM unmatched_users WHERE user_id = :user_id"), {"user_id": uid}
            ).first()
            if exists:
                continue
            db.execute(
                text("INSERT INTO unmatched_users (user_id, unmatched_since) VALUES (:user_id, :since)"),
                {"user_id": uid, "since": _epoch(matched_at)},
            )

    def refresh_question_means(self) -> int:
        with self._session_factory() as db:
            res = db.execute(
                text(
                    """
                    UPDATE aorb
                    SET mean = COALESCE(
                      (SELECT AVG(CAST(a.answer AS FLOAT))
                       FROM aorb_answers a
                       WHERE a.question_id = aorb.id
                         AND a.user_id <> :shadow_id),
                      0.5)
                    """
                ),
                {"shadow_id": self.shadow_id},
            )
            db.commit()
        return int(res.rowcount or 0)

    def get_user_matches(self, user_id: int) -> list[dict[str, Any]]:
        with self._session_factory() as db:
            rows = db.execute(
                text(
                    """
                    SELECT user_id, target_id, matched_on
                    FROM matched
                    WHERE user_id = :user_id
                    ORDER BY matched_on DESC, id DESC
                    """
                ),
                {"user_id": user_id},
            ).mappings().all()
        return [dict(r) for r in rows]

    def get_match_between_users(self, user_a: int, user_b: int) -> dict[str, Any] | None:
        with self._session_factory() as db:
            row = db.execute(
                text(
                    """
                    SELECT user_id, target_id, matched_on
                    FROM matched
                    WHERE user_id = :user_a AND target_id = :user_b
                    ORDER BY matched_on DESC, id DESC
                    LIMIT 1
                    """
                ),
                {"user_a": user_a, "user_b": user_b},
            ).mappings().first()
        return dict(row) if row else None
