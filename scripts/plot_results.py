import pandas as pd
import matplotlib.pyplot as plt
from pathlib import Path

# ============================================================
# Paths
# ============================================================
PROJECT_ROOT = Path(__file__).resolve().parents[1]
RESULTS_CSV = PROJECT_ROOT / "results.csv"
SIZE_ORDER = ["small", "medium", "large"]

print(f"Loading results from: {RESULTS_CSV}")

# ============================================================
# Load CSV
# ============================================================
df = pd.read_csv(RESULTS_CSV)
df.columns = df.columns.str.strip()
sizes = [s for s in SIZE_ORDER if s in set(df["instance"])]
strategies = sorted(df["strategy"].unique())

# ============================================================
# PLOT 1: Placement rate across seeds, per strategy
# ============================================================
plt.figure(figsize=(7, 4))
for strategy in strategies:
    for inst in sizes:
        subset = df[(df["instance"] == inst) & (df["strategy"] == strategy)]
        plt.scatter(subset["seed"], subset["placement_rate"], label=f"{inst} / {strategy}", alpha=0.7)

plt.xlabel("Random seed")
plt.ylabel("Placed periods / target periods")
plt.title("Placement rate across seeds")
plt.legend()
plt.grid(True)
plt.tight_layout()

# ============================================================
# PLOT 2: Mean runtime by instance size and strategy
# ============================================================
plt.figure(figsize=(7, 4))
runtime = df.pivot_table(index="instance", columns="strategy", values="wall_time_s", aggfunc="mean").reindex(sizes)
runtime.plot(kind="bar", ax=plt.gca(), rot=0)
plt.ylabel("Mean wall time (s)")
plt.title("Runtime by instance size")
plt.grid(axis="y")
plt.tight_layout()

# ============================================================
# PLOT 3: Conflict composition by type
# ============================================================
plt.figure(figsize=(7, 4))

conflict_components = {
    "unassignable": "unassignable",
    "capacity-exceeded": "capacity_exceeded",
    "generation-error": "generation_error",
}

stack_data = (
    df.groupby(["instance", "strategy"])[list(conflict_components.values())]
      .mean()
      .reindex([(inst, s) for inst in sizes for s in strategies])
)
labels = [f"{inst}\n{s}" for inst, s in stack_data.index]

bottom = None
for label, col in conflict_components.items():
    if bottom is None:
        plt.bar(labels, stack_data[col], label=label)
        bottom = stack_data[col].copy()
    else:
        plt.bar(labels, stack_data[col], bottom=bottom, label=label)
        bottom += stack_data[col]

plt.ylabel("Mean conflicts per run")
plt.title("Conflict composition by type")
plt.legend()
plt.grid(axis="y")
plt.tight_layout()

# ============================================================
# SHOW ALL FIGURES AT ONCE
# ============================================================
plt.show()
