"""Scheduler tuning and file locations."""
import logging
from dataclasses import dataclass, fields, asdict
from pathlib import Path

import yaml

from medcards.errors import ConfigError

logger = logging.getLogger(__name__)

APP_DIR = Path.home() / ".medcards"
DEFAULT_DB_PATH = str(APP_DIR / "medcards.db")
DEFAULT_CONFIG_PATH = str(APP_DIR / "config.yaml")

LAPSE_POLICIES = ("reset", "relearn")


@dataclass(frozen=True)
class SchedulerConfig:
    """Numeric constants of the SM-2 style scheduler.

    Intervals are whole days. Ease deltas are applied per review and the
    result is floored at ``minimum_ease``.
    """
    starting_ease: float = 2.5
    minimum_ease: float = 1.3
    again_ease_penalty: float = 0.20
    hard_ease_penalty: float = 0.15
    easy_ease_bonus: float = 0.15
    again_interval: int = 1
    first_interval: int = 1
    easy_first_interval: int = 4
    hard_multiplier: float = 1.2
    easy_bonus: float = 1.3
    maximum_interval: int = 365
    graduating_reps: int = 1
    # "reset": a lapse while learning stays in learning with progress reset.
    # "relearn": a lapse while learning demotes to relearning.
    learning_lapse_policy: str = "reset"

    def __post_init__(self):
        problems = []
        if self.minimum_ease <= 0:
            problems.append("minimum_ease must be positive")
        if self.starting_ease < self.minimum_ease:
            problems.append("starting_ease must be >= minimum_ease")
        for name in ("again_ease_penalty", "hard_ease_penalty", "easy_ease_bonus"):
            if getattr(self, name) < 0:
                problems.append(f"{name} must not be negative")
        if self.again_interval < 1:
            problems.append("again_interval must be at least 1 day")
        if self.first_interval < 1 or self.easy_first_interval < 1:
            problems.append("first intervals must be at least 1 day")
        if self.hard_multiplier < 1 or self.easy_bonus < 1:
            problems.append("hard_multiplier and easy_bonus must be >= 1")
        if self.maximum_interval < self.easy_first_interval:
            problems.append("maximum_interval must be >= easy_first_interval")
        if self.graduating_reps < 1:
            problems.append("graduating_reps must be at least 1")
        if self.learning_lapse_policy not in LAPSE_POLICIES:
            problems.append(f"learning_lapse_policy must be one of {LAPSE_POLICIES}")
        if problems:
            raise ConfigError("; ".join(problems))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SchedulerConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown scheduler settings: {', '.join(unknown)}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(str(e)) from e


DEFAULT_CONFIG = SchedulerConfig()


def load_config(path: str = DEFAULT_CONFIG_PATH) -> SchedulerConfig:
    """Load scheduler settings from a YAML file, falling back to defaults.

    The file may hold the settings at the top level or under a ``scheduler`` key.
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return DEFAULT_CONFIG
    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    if "scheduler" in data:
        data = data["scheduler"] or {}
    config = SchedulerConfig.from_dict(data)
    logger.info("Loaded scheduler config from %s", config_path)
    return config


def save_config(config: SchedulerConfig, path: str = DEFAULT_CONFIG_PATH) -> None:
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.safe_dump({"scheduler": config.to_dict()}, sort_keys=False))
