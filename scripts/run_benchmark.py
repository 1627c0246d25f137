#!/usr/bin/env python3
"""Batch runner for the timetable engine.

Generates synthetic schools of several sizes, runs each allocation strategy
across random seeds and writes placement rates and runtimes to CSV.
"""

from __future__ import annotations

import argparse
import csv
import sys
import time
from pathlib import Path
from typing import Any, Dict, List

# Make project root importable
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(PROJECT_ROOT))

from timetabler.config import EngineSettings, configure_logging
from timetabler.drivers import generate_timetable
from timetabler.models import ConflictType
from timetabler.samples import build_sample_school


# ---------- Benchmark Runner ----------

def run_benchmark(
    sizes: List[str],
    strategies: List[str],
    seed_count: int,
    time_limit: float,
    output: Path,
) -> None:
    records: List[Dict[str, Any]] = []

    print("Running benchmark (single-threaded, reproducible).")

    for size in sizes:
        for seed in range(seed_count):
            snapshot = build_sample_school(size, seed)
            for strategy in strategies:
                settings = EngineSettings(
                    strategy=strategy,
                    time_limit_seconds=time_limit,
                    random_seed=seed,
                )
                started = time.perf_counter()
                result = generate_timetable(snapshot, settings)
                elapsed = time.perf_counter() - started

                stats = result.statistics
                target = stats.get("periods", 0)
                placed = stats.get("placed_periods", 0)
                by_type = stats.get("conflicts_by_type", {})

                records.append({
                    "instance": size,
                    "seed": seed,
                    "strategy": strategy,
                    "success": result.success,
                    "n_classes": len(snapshot.classes),
                    "n_staff": len(snapshot.staff),
                    "n_assignments": len(snapshot.assignments),
                    "n_slots": len(snapshot.slots),
                    "target_periods": target,
                    "placed_periods": placed,
                    "placement_rate": placed / target if target else 1.0,
                    "conflicts": len(result.conflicts),
                    "unassignable": by_type.get(ConflictType.UNASSIGNABLE.value, 0),
                    "capacity_exceeded": by_type.get(ConflictType.CAPACITY_EXCEEDED.value, 0),
                    "generation_error": by_type.get(ConflictType.GENERATION_ERROR.value, 0),
                    "wall_time_s": elapsed,
                })

                print(
                    f"[{size}] seed={seed} strategy={strategy}: "
                    f"placed={placed}/{target} conflicts={len(result.conflicts)} time={elapsed:.2f}s"
                )

    # ---------- Write CSV ----------

    fieldnames = [
        "instance",
        "seed",
        "strategy",
        "success",
        "n_classes",
        "n_staff",
        "n_assignments",
        "n_slots",
        "target_periods",
        "placed_periods",
        "placement_rate",
        "conflicts",
        "unassignable",
        "capacity_exceeded",
        "generation_error",
        "wall_time_s",
    ]

    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
        writer.writeheader()
        for record in records:
            writer.writerow(record)

    print(f"Wrote benchmark results to {output}")


# ---------- CLI ----------

def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    parser.add_argument("--sizes", nargs="+", default=["small", "medium", "large"])
    parser.add_argument("--strategies", nargs="+", default=["greedy", "cpsat"])
    parser.add_argument("--seed-count", type=int, default=10)
    parser.add_argument("--time-limit", type=float, default=20.0)
    parser.add_argument(
        "--output",
        type=Path,
        default=PROJECT_ROOT / "results.csv",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(EngineSettings(log_level="WARNING"))
    run_benchmark(
        sizes=args.sizes,
        strategies=args.strategies,
        seed_count=args.seed_count,
        time_limit=args.time_limit,
        output=args.output,
    )


if __name__ == "__main__":
    main()
