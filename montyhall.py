import copy
import multiprocessing as mp
from dataclasses import dataclass
from enum import Enum
from functools import partial

import numpy as np


# Without loss of generality the contestant always starts on door 1: the car is
# placed uniformly over all doors and the host picks uniformly among goats, so
# the identity of the first pick cannot change the outcome distribution.
# Breaking either uniformity breaks this shortcut.
FIRST_CHOICE = 1

DEFAULT_CHUNK = 100_000

DEFAULT_CONFIG = {
    'trials': 100_000,
    'doors': 3,
    'opens': 1,
    'seed': None,
    'workers': 1,
    'verbose': 0,
}


class Decision(Enum):
    STAY = 'stay'
    SWITCH = 'switch'


class Outcome(Enum):
    WIN = 'win'
    LOSE = 'lose'


class ConfigurationError(ValueError):
    """Raised for simulation parameters that cannot describe a valid game"""


def _is_int(value):
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def validate(n_trials, n_doors, n_opens):
    """Check the run parameters once, before any trial is played"""
    for name, value in (('trials', n_trials), ('doors', n_doors), ('opens', n_opens)):
        if not _is_int(value):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if n_trials < 1:
        raise ConfigurationError(f"trials must be >= 1, got {n_trials}")
    if n_doors < 3:
        raise ConfigurationError(f"doors must be >= 3, got {n_doors}")
    if not 0 <= n_opens < n_doors - 1:
        raise ConfigurationError(
            f"opens must be in [0, doors-2], got opens={n_opens}, doors={n_doors}")


# --- Sampling ----------------------------------------------------------------

def switch_candidates(n_doors, n_opens, car_door):
    """Doors a switching contestant may land on for a given car position.

    Doors 2..last_after_opens survive the reveal, except that a car beyond that
    range is itself guaranteed to survive and takes the place of the last one.
    """
    last_after_opens = n_doors - n_opens
    if car_door <= last_after_opens:
        return list(range(2, last_after_opens + 1))
    return list(range(2, last_after_opens)) + [car_door]


def sample_trial(rng, n_doors, n_opens):
    """Play one game in O(1) and return its (Decision, Outcome).

    Draws, in order: the car door, the decision, and (only when switching away
    from a goat) the switch target. Parameters are not re-validated here.
    """
    car_door = rng.integers(1, n_doors + 1)
    decision = Decision.SWITCH if rng.integers(2) else Decision.STAY

    if decision is Decision.STAY:
        final_choice = FIRST_CHOICE
    elif car_door == FIRST_CHOICE:
        # Switching away from the car loses whatever the host opened
        return decision, Outcome.LOSE
    else:
        last_after_opens = n_doors - n_opens
        final_choice = rng.integers(2, last_after_opens + 1)
        # Map the top of the range onto the car when the car sits above it
        if car_door > last_after_opens and final_choice == last_after_opens:
            final_choice = car_door

    outcome = Outcome.WIN if final_choice == car_door else Outcome.LOSE
    return decision, outcome


def sample_trials(rng, n_doors, n_opens, size):
    """Vectorized sample_trial: returns boolean arrays (switched, won)"""
    last_after_opens = n_doors - n_opens
    cars = rng.integers(1, n_doors + 1, size=size)
    switched = rng.integers(2, size=size).astype(bool)
    targets = rng.integers(2, last_after_opens + 1, size=size)
    targets = np.where((cars > last_after_opens) & (targets == last_after_opens),
                       cars, targets)
    final = np.where(switched, targets, FIRST_CHOICE)
    return switched, final == cars


class Game:
    def __init__(self, rng=None, n_doors=3, n_opens=1, verbose=0):
        """Slow reference game with every door held explicitly
        rng: numpy Generator shared with the caller, a fresh default_rng() if omitted
        n_doors (int): total number of doors, exactly one hides the car
        n_opens (int): goats the host reveals after the first choice
        verbose: set to 2 for full output
        """
        self.rng = rng or np.random.default_rng()
        self.n_doors = n_doors
        self.n_opens = n_opens
        self.verbose = verbose
        self.initialize_state()

    def initialize_state(self):
        self.choice = None    # Current player selection
        self.win = False      # Whether the game is a win result for the player

        self.state = {
            'prizes': np.zeros(self.n_doors, dtype=bool),
            'visible': np.zeros(self.n_doors, dtype=bool),
        }
        self.state['prizes'][self.rng.integers(self.n_doors)] = True

    def choose(self, strategy='random'):
        if strategy == 'stay':
            return
        options = [idx for idx, visible in enumerate(self.state['visible'])
                   if not visible]
        if strategy == 'random':
            self.choice = options[self.rng.integers(len(options))]
        elif strategy == 'switch':
            options.remove(self.choice)
            self.choice = options[self.rng.integers(len(options))]
        else:
            raise ValueError(f"Player strategy not supported {strategy}")

    def reveal(self):
        """Host opens n_opens random goats, never the player's choice"""
        options = [idx for idx, prize in enumerate(self.state['prizes'])
                   if not prize and idx != self.choice]
        opened = self.rng.choice(np.asarray(options, dtype=int), self.n_opens,
                                 replace=False)
        self.state['visible'][opened] = True
        if self.verbose > 1:
            print(f"choice {self.choice}, opened {sorted(opened.tolist())}")

    def play(self, player='switch'):
        """1) choose a door randomly 2) host reveals 3) stay or switch"""
        self.choose(strategy='random')
        self.reveal()
        self.choose(strategy=player)
        self.win = bool(self.state['prizes'][self.choice])
        return self.win


def sample_trial_bruteforce(rng, n_doors, n_opens):
    """O(n_doors) counterpart of sample_trial, used as a correctness oracle"""
    decision = Decision.SWITCH if rng.integers(2) else Decision.STAY
    game = Game(rng=rng, n_doors=n_doors, n_opens=n_opens)
    win = game.play(player=decision.value)
    return decision, Outcome.WIN if win else Outcome.LOSE


# --- Aggregation -------------------------------------------------------------

def new_tally():
    return {(decision, outcome): 0 for decision in Decision for outcome in Outcome}


def merge_tallies(*tallies):
    merged = new_tally()
    for tally in tallies:
        for key, count in tally.items():
            merged[key] += count
    return merged


def _tally_arrays(switched, won):
    n_switch_win = int(np.count_nonzero(switched & won))
    n_stay_win = int(np.count_nonzero(~switched & won))
    n_switch = int(np.count_nonzero(switched))
    return {
        (Decision.STAY, Outcome.WIN): n_stay_win,
        (Decision.STAY, Outcome.LOSE): len(switched) - n_switch - n_stay_win,
        (Decision.SWITCH, Outcome.WIN): n_switch_win,
        (Decision.SWITCH, Outcome.LOSE): n_switch - n_switch_win,
    }


def _tally_vectorized(rng, n_doors, n_opens, size):
    return _tally_arrays(*sample_trials(rng, n_doors, n_opens, size))


def _tally_per_trial(sample, rng, n_doors, n_opens, size):
    tally = new_tally()
    for _ in range(size):
        tally[sample(rng, n_doors, n_opens)] += 1
    return tally


# Each sampler plays a chunk of games and returns its tally
SAMPLERS = {
    'vectorized': _tally_vectorized,
    'fast': partial(_tally_per_trial, sample_trial),
    'bruteforce': partial(_tally_per_trial, sample_trial_bruteforce),
}


def accumulate(rng, n_trials, n_doors, n_opens, chunk_size=DEFAULT_CHUNK,
               sampler='vectorized', progress=None):
    """Play n_trials games in chunks, calling progress(done, total) after each"""
    tally = new_tally()
    done = 0
    while done < n_trials:
        size = min(chunk_size, n_trials - done)
        chunk = SAMPLERS[sampler](rng, n_doors, n_opens, size)
        tally = merge_tallies(tally, chunk)
        done += size
        if progress is not None:
            progress(done, n_trials)
    return tally


def _run_shard(seed_seq, n_trials, n_doors, n_opens, chunk_size, sampler):
    rng = np.random.default_rng(seed_seq)
    return accumulate(rng, n_trials, n_doors, n_opens, chunk_size, sampler)


def run(n_trials, n_doors, n_opens, rng=None, seed=None, workers=1,
        chunk_size=DEFAULT_CHUNK, sampler='vectorized', progress=None):
    """Validate, accumulate the decision x outcome tally, and wrap it in a Report.

    With workers > 1 the trials are split across a process pool, each shard
    drawing from its own child of SeedSequence(seed); partial tallies are summed.
    """
    validate(n_trials, n_doors, n_opens)
    if sampler not in SAMPLERS:
        raise ConfigurationError(
            f"unknown sampler '{sampler}'. Available: {sorted(SAMPLERS)}")
    if not _is_int(workers) or workers < 1:
        raise ConfigurationError(f"workers must be >= 1, got {workers!r}")
    if not _is_int(chunk_size) or chunk_size < 1:
        raise ConfigurationError(f"chunk_size must be >= 1, got {chunk_size!r}")

    if workers == 1:
        rng = rng or np.random.default_rng(seed)
        tally = accumulate(rng, n_trials, n_doors, n_opens, chunk_size, sampler,
                           progress)
    else:
        if rng is not None:
            raise ConfigurationError("pass a seed, not an rng, when workers > 1")
        shares = [n_trials // workers + (i < n_trials % workers) for i in range(workers)]
        streams = np.random.SeedSequence(seed).spawn(workers)
        jobs = [(stream, share, n_doors, n_opens, chunk_size, sampler)
                for stream, share in zip(streams, shares) if share]
        with mp.Pool(len(jobs)) as pool:
            partials = pool.starmap(_run_shard, jobs)
        tally = merge_tallies(*partials)
        if progress is not None:
            progress(n_trials, n_trials)

    return Report(n_trials=n_trials, n_doors=n_doors, n_opens=n_opens, tally=tally)


def _ratio(wins, total):
    return wins / total if total else None


@dataclass(frozen=True)
class Report:
    """Outcome of one run; every statistic is derived from the tally.
    Ratios are None when their strategy was never sampled.
    """
    n_trials: int
    n_doors: int
    n_opens: int
    tally: dict

    def __post_init__(self):
        actual = sum(self.tally.values())
        if actual != self.n_trials:
            raise ValueError(
                f"tally sum mismatch: expected {self.n_trials}, got {actual}")

    def wins(self, decision):
        return self.tally[(decision, Outcome.WIN)]

    def losses(self, decision):
        return self.tally[(decision, Outcome.LOSE)]

    def totals(self, decision):
        return self.wins(decision) + self.losses(decision)

    @property
    def stay_ratio(self):
        return _ratio(self.wins(Decision.STAY), self.totals(Decision.STAY))

    @property
    def switch_ratio(self):
        return _ratio(self.wins(Decision.SWITCH), self.totals(Decision.SWITCH))

    @property
    def advantage(self):
        if self.stay_ratio is None or self.switch_ratio is None:
            return None
        return _ratio(self.switch_ratio, self.stay_ratio)

    @property
    def pre_prob(self):
        return 1 / self.n_doors

    @property
    def post_prob(self):
        return ((self.n_doors - 1) / (self.n_doors - self.n_opens - 1)) / self.n_doors

    @property
    def error(self):
        if self.stay_ratio is None or self.switch_ratio is None:
            return None
        return abs((self.switch_ratio - self.post_prob)
                   + (self.stay_ratio - self.pre_prob)) / 2


# --- Reporting ---------------------------------------------------------------

def _fmt(value):
    return 'undefined' if value is None else f"{value:.6f}"


def format_report(report, verbose=0):
    stay, switch = Decision.STAY, Decision.SWITCH
    lines = [
        f"{report.n_trials:,} trials, {report.n_doors:,} doors, {report.n_opens:,} opens",
        f"wins = switch:{report.wins(switch):,}, stay:{report.wins(stay):,}",
    ]
    if verbose:
        lines += [
            f"losses = switch:{report.losses(switch):,}, stay:{report.losses(stay):,}",
            f"switch: win:{report.wins(switch):,}, lose:{report.losses(switch):,}",
            f"stay: win:{report.wins(stay):,}, lose:{report.losses(stay):,}",
        ]
    lines += [
        f"stay win ratio = {_fmt(report.stay_ratio)}",
        f"switch win ratio = {_fmt(report.switch_ratio)}",
        f"switch/stay advantage = {_fmt(report.advantage)}",
        f"pre-reveal chance correct = {_fmt(report.pre_prob)}",
        f"post-reveal switch chance correct = {_fmt(report.post_prob)}",
        f"error = {_fmt(report.error)}",
    ]
    return "\n".join(lines)


class MontySeries:
    def __init__(self, config=None):
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        self.config.update(config or {})
        validate(self.config['trials'], self.config['doors'], self.config['opens'])
        self.rng = np.random.default_rng(self.config['seed'])
        self.report = None

    def header(self):
        print(f"\n--- Simulating {self.config['trials']:,} games ---")
        print(f"--- Using {self.config['doors']} doors and {self.config['opens']} opens ---")

    def _progress(self, done, total):
        print(f"--- {done:,} / {total:,} trials")

    def simulate(self, sampler='vectorized'):
        workers = self.config['workers']
        self.report = run(
            self.config['trials'], self.config['doors'], self.config['opens'],
            rng=self.rng if workers == 1 else None,
            seed=self.config['seed'],
            workers=workers,
            sampler=sampler,
            progress=self._progress if self.config['verbose'] > 1 else None,
        )
        return self.report

    def pstats(self):
        if self.report is None:
            raise RuntimeError("simulate() must run before pstats()")
        print(format_report(self.report, verbose=self.config['verbose']))

    def crosscheck(self, max_doors=6, trials=20_000, tolerance=0.03,
                   samplers=('fast', 'vectorized')):
        """Compare the O(1) samplers against the explicit door game.
        Returns a list of (doors, opens, sampler, statistic, sampled, brute) mismatches.
        """
        mismatches = []
        print(f"Crosscheck -- ( doors | opens | stay/switch per {'/'.join(samplers)}/bruteforce )")
        for doors in range(3, max_doors + 1):
            for opens in range(doors - 1):
                brute = run(trials, doors, opens, rng=self.rng, sampler='bruteforce')
                reports = {name: run(trials, doors, opens, rng=self.rng, sampler=name)
                           for name in samplers}
                if self.config['verbose']:
                    columns = [reports[name] for name in samplers] + [brute]
                    print(f"{' '*13}{str(doors).ljust(8)}{str(opens).ljust(8)}"
                          + '/'.join(_fmt(r.stay_ratio) for r in columns) + "  "
                          + '/'.join(_fmt(r.switch_ratio) for r in columns))
                for name, report in reports.items():
                    for stat in ('stay_ratio', 'switch_ratio'):
                        a, b = getattr(report, stat), getattr(brute, stat)
                        if a is None or b is None or abs(a - b) > tolerance:
                            mismatches.append((doors, opens, name, stat, a, b))
        print(f"Total mismatches {len(mismatches)}")
        return mismatches
