"""Configuration classes for the scheduling system."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ParseError, ValidationError


class CyclePolicy(str, Enum):
    """What to do when the dependency graph contains cycles."""

    FAIL_FAST = "fail_fast"  # Raise CircularDependencyError
    BREAK_CYCLES = "break_cycles"  # Drop the closing edge of each cycle and continue


class AlgorithmType(str, Enum):
    """Available optimizers."""

    BRANCH_AND_BOUND = "branch_and_bound"
    CP_SAT = "cpsat"
    DEPENDENCY_ORDER = "dependency_order"  # Everything in dependency order, deadlines ignored


class AlgorithmConfig(BaseModel):
    """Configuration for optimizer selection."""

    model_config = ConfigDict(frozen=True)

    type: AlgorithmType = AlgorithmType.BRANCH_AND_BOUND


class SearchConfig(BaseModel):
    """Limits and shortcuts for the branch-and-bound search."""

    model_config = ConfigDict(frozen=True)

    max_nodes: int | None = Field(default=None, gt=0)  # None = exhaustive
    time_limit_seconds: float | None = Field(default=None, gt=0)  # None = no limit
    use_interval_fast_path: bool = True  # DP when there are no dependencies


class CPSATConfig(BaseModel):
    """Configuration for the CP-SAT optimizer."""

    model_config = ConfigDict(frozen=True)

    time_limit_seconds: float | None = 30.0  # None = run until optimal
    random_seed: int = 42
    num_workers: int | None = None  # None = OR-Tools default


class SchedulingConfig(BaseModel):
    """Immutable configuration passed into each scheduling run."""

    model_config = ConfigDict(frozen=True)

    # Fraction by which every deadline is extended (0 = strict)
    deadline_flexibility: float = 0.0
    # Tasks with weight >= threshold get the extra flexibility on top
    high_priority_weight_threshold: int = 5
    high_priority_extra_flexibility: float = 0.0

    cycle_policy: CyclePolicy = CyclePolicy.FAIL_FAST

    algorithm: AlgorithmConfig = AlgorithmConfig()
    search: SearchConfig = SearchConfig()
    cpsat: CPSATConfig = CPSATConfig()

    @field_validator("deadline_flexibility", "high_priority_extra_flexibility")
    @classmethod
    def clamp_fraction(cls, v: float) -> float:
        """Clamp flexibility fractions to [0, 1]."""
        return max(0.0, min(1.0, v))

    @property
    def ignores_deadlines(self) -> bool:
        return self.algorithm.type == AlgorithmType.DEPENDENCY_ORDER


def parse_scheduling_config(data: dict[str, Any] | None) -> SchedulingConfig:
    """Build a SchedulingConfig from a plain mapping (e.g. a YAML section)."""
    if not data:
        return SchedulingConfig()
    try:
        return SchedulingConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid scheduling config: {e}") from e


def load_scheduling_config(path: Path | str) -> SchedulingConfig:
    """Load a SchedulingConfig from a YAML file.

    The file may either contain the settings at the root or under a
    top-level ``config:`` key.
    """
    path = Path(path)
    if not path.exists():
        raise ParseError(f"Config file not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    if data is None:
        return SchedulingConfig()
    if not isinstance(data, dict):
        raise ParseError("Config YAML must contain a dictionary at the root level")
    if "config" in data:
        data = data["config"]
    return parse_scheduling_config(data)  # type: ignore[arg-type]
