# Scripts/reset_and_reprocess_points.py
# Usage (from backend/):
#   python Scripts/reset_and_reprocess_points.py 7
#   python Scripts/reset_and_reprocess_points.py 7 --yes
#
# Zeroes every point total, marks all predictions as unprocessed and settles
# again the finished matches of the given round.

import argparse
import logging

from prode.crud.crud_points import reset_all_points
from prode.crud.crud_prediction import reset_all_predictions
from prode.db.init_db import init_db
from prode.db.session import SessionLocal
from prode.services.container import get_services


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("round_number", type=int, help="Round to re-settle, e.g. 7")
    ap.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")

    if not args.yes:
        answer = input(f"This resets ALL points and re-settles round {args.round_number}. Continue? [y/N] ")
        if answer.strip().lower() != "y":
            raise SystemExit("Aborted.")

    init_db()
    services = get_services()

    db = SessionLocal()
    try:
        reset_all_points(db)
        n = reset_all_predictions(db)
        db.commit()
    finally:
        db.close()
    print(f"Reset points and {n} prediction(s).")

    services.cache.invalidate_all()
    result = services.engine.process_round(args.round_number)
    summary = result.summary()
    print(
        f"DONE. Round {result.round_number}: {result.processed_matches}/{result.finished_matches} finished "
        f"match(es) settled, {result.final_count} prediction(s), "
        f"{summary['total_points_awarded']} point(s), {result.failures} failure(s)."
    )
    services.provider.close()


if __name__ == "__main__":
    main()
