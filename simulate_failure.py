# simulate_failure.py

import argparse
import logging
import random
import string
import sys

import numpy as np

from config import (DEFAULT_HASH, DEFAULT_VARIANT, DISKS, KEY_LENGTH, LIMIT_FILES, NUM_FILES,
                    RANDOM_SEED, RING_VARIANTS, SLOTS_PER_WEIGHT, WEIGHT)
from hash_functions import HASH_FUNCTIONS, get_hash_function
from placement import add_node, build_ring, fail_or_remove, finalize, lookup, modulo_place
from ring_errors import RingError

COLUMNS = ["consistent", "modulo", "lconsistent", "lmodulo", "mconsistent", "mmodulo"]
ALPHANUMERIC = string.ascii_letters + string.digits


def rand_str(rng, chars, llen):
    return ''.join(rng.choice(chars) for _ in range(llen))


def random_keys(count, length=KEY_LENGTH, seed=RANDOM_SEED):
    rng = random.Random(seed)
    for _ in range(count):
        yield rand_str(rng, ALPHANUMERIC, length)


class FileData:
    def __init__(self, file, **targets):
        self.file = file
        for column in COLUMNS:
            setattr(self, column, targets[column])


class DiskData:
    def __init__(self):
        for column in COLUMNS:
            setattr(self, column, 0)


class ComparisonReport:
    """Placements and counters for the baseline, removed-disk and added-disk scenarios.

    Column prefixes follow the table layout: no prefix is the baseline, ``l``
    is one disk less and ``m`` is one disk more.
    """

    def __init__(self, disks, removed_disk, variant, hash_name):
        self.disks = disks
        self.removed_disk = removed_disk
        self.variant = variant
        self.hash_name = hash_name
        self.num_files = 0
        self.files = []
        self.disk_data = [DiskData() for _ in range(disks + 1)]
        self.changes = {"lconsistent": 0, "lmodulo": 0, "mconsistent": 0, "mmodulo": 0}
        self.moved_to_other = 0

    def churn(self, column):
        if not self.num_files:
            return 0.0
        return self.changes[column] / self.num_files

    def counts(self, column):
        if column.startswith("m"):
            return [getattr(d, column) for d in self.disk_data]
        counts = [getattr(d, column) for d in self.disk_data[:self.disks]]
        if column == "lconsistent":
            del counts[self.removed_disk]
        elif column == "lmodulo":
            counts = counts[:self.disks - 1]
        return counts

    def load_stats(self, column):
        counts = np.array(self.counts(column), dtype=float)
        optimal = self.num_files / len(counts)
        return {
            "optimal": optimal,
            "min": int(counts.min()),
            "max": int(counts.max()),
            "std": float(counts.std()),
            "max_deviation_pct": float(np.abs(counts - optimal).max() * 100 / optimal) if optimal else 0.0,
        }

    def to_dict(self):
        return {
            "disks": self.disks,
            "variant": self.variant,
            "hash": self.hash_name,
            "removed_disk": self.removed_disk,
            "num_files": self.num_files,
            "changes": dict(self.changes),
            "moved_to_other": self.moved_to_other,
            "churn": {column: self.churn(column) for column in self.changes},
            "load": {column: self.load_stats(column) for column in COLUMNS},
            "disk_counts": {column: self.counts(column) for column in COLUMNS},
        }

    def print_report(self, limit=LIMIT_FILES):
        print(f"Number of files: {self.num_files} Optimal files per disk: {self.num_files / self.disks:.2f}")
        if self.num_files > limit:
            print(f"INFO: Only showing first {limit} files...")
        print("File\t\tC\tM\tCl\tMl\tCm\tMm")
        for file in self.files[:limit]:
            print("\t".join([file.file] + [str(getattr(file, column)) for column in COLUMNS]))

        cells = []
        for column in ("lconsistent", "lmodulo", "mconsistent", "mmodulo"):
            cells.append(f"{self.changes[column]} {self.changes[column] * 100 // max(self.num_files, 1)}%")
        print("Changes\t\t--\t--\t" + "\t".join(cells))

        for disk in range(self.disks):
            info = self.disk_data[disk]
            print(f"Disk {disk}\t\t" + "\t".join(str(getattr(info, column)) for column in COLUMNS))
        extra = self.disk_data[self.disks]
        print(f"Disk {self.disks}\t\t-\t-\t-\t-\t{extra.mconsistent}\t{extra.mmodulo}")

        stats = self.load_stats("consistent")
        print(f"[Sim] Consistent load: min {stats['min']} max {stats['max']} "
              f"std {stats['std']:.2f} ({stats['max_deviation_pct']:.2f}% max deviation)")


def build_scenarios(disks, weight, variant, hash_name, slots_per_weight, removed_disk):
    """Return the baseline, one-less and one-more rings.

    All three are built from the same node list so slot arrays share their length.
    """
    nodes = list(range(disks))
    rings = [build_ring(nodes, weight, variant, hash_name, slots_per_weight) for _ in range(3)]
    base, less, more = rings

    fail_or_remove(less, removed_disk)
    finalize(less)
    add_node(more, disks, weight)
    finalize(more)
    return base, less, more


def run_comparison(disks=DISKS, weight=WEIGHT, num_files=NUM_FILES, variant=DEFAULT_VARIANT,
                   hash_name=DEFAULT_HASH, slots_per_weight=SLOTS_PER_WEIGHT, removed_disk=None,
                   seed=RANDOM_SEED, keep_files=LIMIT_FILES):
    if disks < 2:
        raise ValueError("At least two disks are needed to remove one")
    if removed_disk is None:
        removed_disk = random.Random(seed).randrange(disks)
    if not 0 <= removed_disk < disks:
        raise ValueError(f"Disk {removed_disk} is not in 0..{disks - 1}")

    hash_fn = get_hash_function(hash_name)
    c_ring, l_ring, m_ring = build_scenarios(disks, weight, variant, hash_name, slots_per_weight, removed_disk)
    report = ComparisonReport(disks, removed_disk, variant, hash_name)

    for s in random_keys(num_files, seed=seed):
        targets = {
            "consistent": lookup(c_ring, s),
            "lconsistent": lookup(l_ring, s),
            "mconsistent": lookup(m_ring, s),
            "modulo": modulo_place(s, disks, hash_fn),
            "lmodulo": modulo_place(s, disks - 1, hash_fn),
            "mmodulo": modulo_place(s, disks + 1, hash_fn),
        }
        for column, target in targets.items():
            setattr(report.disk_data[target], column, getattr(report.disk_data[target], column) + 1)

        if targets["lconsistent"] != targets["consistent"]:
            report.changes["lconsistent"] += 1
        if targets["lmodulo"] != targets["modulo"]:
            report.changes["lmodulo"] += 1
        if targets["mconsistent"] != targets["consistent"]:
            report.changes["mconsistent"] += 1
            if targets["mconsistent"] != disks:
                report.moved_to_other += 1
        if targets["mmodulo"] != targets["modulo"]:
            report.changes["mmodulo"] += 1

        if len(report.files) < keep_files:
            report.files.append(FileData(s, **targets))
        report.num_files += 1

    return report


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Compare consistent hashing with modulo placement")
    parser.add_argument("--disks", type=int, default=DISKS)
    parser.add_argument("--weight", type=int, default=WEIGHT, help="Virtual nodes per disk")
    parser.add_argument("--files", type=int, default=NUM_FILES, help="Number of random keys to place")
    parser.add_argument("--variant", choices=RING_VARIANTS, default=DEFAULT_VARIANT)
    parser.add_argument("--hash", dest="hash_name", choices=sorted(HASH_FUNCTIONS), default=DEFAULT_HASH)
    parser.add_argument("--slots-per-weight", type=int, default=SLOTS_PER_WEIGHT)
    parser.add_argument("--remove", type=int, default=None, help="Disk to remove (random if omitted)")
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument("--limit", type=int, default=LIMIT_FILES, help="Number of files to display")
    parser.add_argument("--plot", metavar="PATH", help="Save a per-disk load chart to PATH")
    parser.add_argument("--log-level", type=str.upper, default="ERROR",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        report = run_comparison(
            disks=args.disks,
            weight=args.weight,
            num_files=args.files,
            variant=args.variant,
            hash_name=args.hash_name,
            slots_per_weight=args.slots_per_weight,
            removed_disk=args.remove,
            seed=args.seed,
            keep_files=args.limit,
        )
    except (RingError, ValueError) as e:
        print(f"[Error] {e}")
        return 1

    print(f"Removing disk: {report.removed_disk}")
    report.print_report(args.limit)

    if args.plot:
        from ring_visual import plot_distribution
        plot_distribution(report, args.plot)
        print(f"[Sim] Load chart written to {args.plot}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
