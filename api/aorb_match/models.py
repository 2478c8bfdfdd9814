from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from .database import Base


class Aorb(Base):
    __tablename__ = "aorb"

    id = Column(Integer, primary_key=True)
    context = Column(String, nullable=False, default="")
    subtext = Column(String, nullable=False, default="")
    option_a = Column(String, nullable=False)
    option_b = Column(String, nullable=False)
    # Fraction of non-shadow users answering option B.
    mean = Column(Float, nullable=False, default=0.5)
    created_on = Column(Integer, nullable=False, default=0)


class UserAccount(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    primary_question_id = Column(Integer, ForeignKey("aorb.id"), nullable=True)
    assoc = Column(String, nullable=False, default="similar")
    created_on = Column(Integer, nullable=False, default=0)


class AorbAnswer(Base):
    __tablename__ = "aorb_answers"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    question_id = Column(Integer, ForeignKey("aorb.id"), nullable=False)
    answer = Column(Integer, nullable=False)
    answered_on = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_user_question"),
        Index("idx_aorb_answers_user_id", "user_id"),
    )


class MatchRecord(Base):
    __tablename__ = "matched"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    target_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    matched_on = Column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_matched_user", "user_id"),
        Index("idx_matched_user_time", "user_id", "matched_on"),
    )


class UnmatchedUser(Base):
    __tablename__ = "unmatched_users"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    unmatched_since = Column(Integer, nullable=False)
