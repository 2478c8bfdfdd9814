import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from aorb_match.config import SHADOW_USER_ID
from aorb_match.database import SessionLocal, init_db
from aorb_match.repo import MatchStore
from aorb_match.services.seeding import seed_dummy_data


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a synthetic A-or-B population")
    parser.add_argument("--n-users", type=int, default=100)
    parser.add_argument("--n-questions", type=int, default=20)
    parser.add_argument("--reset", action="store_true")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--clustered", action="store_true")
    parser.add_argument("--answer-rate", type=float, default=0.9)
    parser.add_argument("--complementary-rate", type=float, default=0.2)
    args = parser.parse_args()

    init_db()
    store = MatchStore(shadow_id=SHADOW_USER_ID)
    store.ensure_shadow_user()
    with SessionLocal() as db:
        summary = seed_dummy_data(
            db=db,
            n_users=args.n_users,
            n_questions=args.n_questions,
            reset=args.reset,
            seed=args.seed,
            clustered=args.clustered,
            answer_rate=args.answer_rate,
            complementary_rate=args.complementary_rate,
            shadow_id=SHADOW_USER_ID,
        )
    store.refresh_question_means()

    print("Seed completed")
    for k, v in summary.items():
        print(f"- {k}: {v}")


if __name__ == "__main__":
    main()
