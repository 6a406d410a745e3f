"""Scheduler package - weighted deadline scheduling on one serial resource.

Pipeline, leaf first:
- DependencyGraph: forward and reverse adjacency over the task snapshot
- CycleDetector: cycle report, checked against the configured policy
- FeasibilityAnalyzer: earliest start times and deadline filtering
- Optimizer: branch and bound (default), CP-SAT, or dependency order
- ScheduleMaterializer: authoritative start/end times

Main entry points:
- SchedulingService / schedule_tasks: run the whole pipeline
- SchedulingConfig: immutable per-run configuration
"""

from .algorithms import (
    BranchAndBoundOptimizer,
    CPSATOptimizer,
    DependencyOrderOptimizer,
    IntervalDPOptimizer,
    create_optimizer,
)
from .config import (
    AlgorithmConfig,
    AlgorithmType,
    CPSATConfig,
    CyclePolicy,
    SchedulingConfig,
    SearchConfig,
    load_scheduling_config,
    parse_scheduling_config,
)
from .core import (
    CycleReport,
    FeasibilityResult,
    OptimizerResult,
    ScheduledTask,
    SchedulingResult,
    SchedulingStatus,
)
from .cycles import CycleDetector, break_cycles
from .feasibility import FeasibilityAnalyzer, effective_deadline
from .graph import DependencyGraph
from .materializer import ScheduleMaterializer
from .protocols import Optimizer
from .service import SchedulingService, schedule_tasks

__all__ = [
    # Core dataclasses
    "CycleReport",
    "FeasibilityResult",
    "OptimizerResult",
    "ScheduledTask",
    "SchedulingResult",
    "SchedulingStatus",
    # Configuration
    "AlgorithmConfig",
    "AlgorithmType",
    "CPSATConfig",
    "CyclePolicy",
    "SchedulingConfig",
    "SearchConfig",
    "load_scheduling_config",
    "parse_scheduling_config",
    # Pipeline stages
    "DependencyGraph",
    "CycleDetector",
    "break_cycles",
    "FeasibilityAnalyzer",
    "effective_deadline",
    "ScheduleMaterializer",
    # Optimizers
    "Optimizer",
    "BranchAndBoundOptimizer",
    "CPSATOptimizer",
    "DependencyOrderOptimizer",
    "IntervalDPOptimizer",
    "create_optimizer",
    # High-level service
    "SchedulingService",
    "schedule_tasks",
]
