# Scripts/show_round_state.py
# Usage (from backend/):
#   python Scripts/show_round_state.py
#   python Scripts/show_round_state.py --max-round 5
#
# Prints what the provider reports for every round and which round the
# calculator would pick right now. Read-only.

import argparse

from prode.core.errors import ProviderError
from prode.core.game_config import MAX_ROUNDS
from prode.scrapers.promiedos import PromiedosClient
from prode.services.round_calculator import RoundCalculator


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--max-round", type=int, default=MAX_ROUNDS)
    args = ap.parse_args()

    provider = PromiedosClient()
    calc = RoundCalculator(provider, max_rounds=args.max_round)

    print("round  total  fin  live  sched  valid  complete")
    for n in range(1, args.max_round + 1):
        try:
            a = calc.analyze_round_status(n)
        except ProviderError as exc:
            print(f"{n:>5}  ERROR: {exc}")
            continue
        print(
            f"{n:>5}  {a.total:>5}  {a.finished:>3}  {a.live:>4}  {a.scheduled:>5}  "
            f"{'yes' if a.is_valid else 'no':>5}  {'yes' if a.is_complete else 'no':>8}"
        )

    print(f"\nCurrent round would be: {calc.calculate_current_round()}")
    provider.close()


if __name__ == "__main__":
    main()
