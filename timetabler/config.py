import logging
import os
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Mapping, Optional

import dotenv

from .errors import ConfigurationError

dotenv.load_dotenv()

STRATEGIES = ("greedy", "cpsat")
REMAINDER_POLICIES = ("trailing", "leading")


@dataclass(frozen=True)
class EngineSettings:
    """Knobs for one generation run.

    strategy: "greedy" (most-constrained-first, no backtracking) or "cpsat"
        (OR-Tools model bounded by ``time_limit_seconds``, greedy fallback).
    remainder_policy: where the short block goes when the weekly target is
        not a multiple of the block size ("trailing" or "leading").
    max_daily_periods_per_unit: ceiling on periods of one (class, unit) pair
        on a single day; None disables it.
    paired_categories: module categories taught in blocks of two periods.
    """

    strategy: str = "greedy"
    time_limit_seconds: float = 10.0
    random_seed: int = 0
    remainder_policy: str = "trailing"
    max_daily_periods_per_unit: Optional[int] = 3
    paired_categories: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"SPECIFIC", "GENERAL"})
    )
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ConfigurationError(f"Unknown strategy {self.strategy!r}; expected one of {STRATEGIES}")
        if self.remainder_policy not in REMAINDER_POLICIES:
            raise ConfigurationError(
                f"Unknown remainder policy {self.remainder_policy!r}; expected one of {REMAINDER_POLICIES}"
            )
        if self.time_limit_seconds <= 0:
            raise ConfigurationError("time_limit_seconds must be positive")
        if self.max_daily_periods_per_unit is not None and self.max_daily_periods_per_unit < 1:
            raise ConfigurationError("max_daily_periods_per_unit must be at least 1")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        defaults = cls()
        try:
            time_limit = float(env.get("TIMETABLER_TIME_LIMIT_SECONDS", defaults.time_limit_seconds))
            seed = int(env.get("TIMETABLER_RANDOM_SEED", defaults.random_seed))
            daily_raw = env.get("TIMETABLER_MAX_DAILY_PERIODS_PER_UNIT")
            daily = defaults.max_daily_periods_per_unit
            if daily_raw is not None:
                # empty or 0 switches the daily ceiling off
                daily = int(daily_raw) if daily_raw.strip() not in ("", "0") else None
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        paired_raw = env.get("TIMETABLER_PAIRED_CATEGORIES")
        paired = defaults.paired_categories
        if paired_raw is not None:
            paired = frozenset(p.strip().upper() for p in paired_raw.split(",") if p.strip())

        return cls(
            strategy=env.get("TIMETABLER_STRATEGY", defaults.strategy).strip().lower(),
            time_limit_seconds=time_limit,
            random_seed=seed,
            remainder_policy=env.get("TIMETABLER_REMAINDER_POLICY", defaults.remainder_policy).strip().lower(),
            max_daily_periods_per_unit=daily,
            paired_categories=paired,
            log_level=env.get("TIMETABLER_LOG_LEVEL", defaults.log_level).strip().upper(),
        )

    def with_overrides(self, **changes) -> "EngineSettings":
        return replace(self, **changes)


_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    global _settings
    if _settings is None:
        _settings = EngineSettings.from_env()
    return _settings


def configure_logging(settings: Optional[EngineSettings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
