import argparse
import copy
import sys
import time

from montyhall import DEFAULT_CONFIG, ConfigurationError, MontySeries


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Monte Carlo estimate of stay/switch win rates in a generalized Monty Hall game."
    )
    parser.add_argument("--trials", "-t", type=int, default=DEFAULT_CONFIG['trials'],
                        help="number of trials to run")
    parser.add_argument("--doors", "-d", type=int, default=DEFAULT_CONFIG['doors'],
                        help="total number of doors")
    parser.add_argument("--opens", "-o", type=int, default=DEFAULT_CONFIG['opens'],
                        help="number of doors to open after initial choice")
    parser.add_argument("--seed", type=int, default=None, help="seed for reproducible runs")
    parser.add_argument("--workers", type=int, default=DEFAULT_CONFIG['workers'],
                        help="number of worker processes")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="-v for extra tallies and timing, -vv for progress")
    parser.add_argument("--check", action="store_true",
                        help="compare the fast sampler against the explicit door game")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = copy.deepcopy(DEFAULT_CONFIG)
    config.update(trials=args.trials, doors=args.doors, opens=args.opens,
                  seed=args.seed, workers=args.workers, verbose=args.verbose)

    try:
        series = MontySeries(config)
        if args.check:
            return 1 if series.crosscheck() else 0

        if args.verbose:
            series.header()
        start = time.time()
        series.simulate()
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    series.pstats()
    if args.verbose:
        print(f"elapsed: {time.time() - start:.3f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
