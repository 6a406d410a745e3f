"""Optimizer factory and exports."""

from ..config import AlgorithmType, SchedulingConfig
from .branch_and_bound import BranchAndBoundOptimizer
from .cpsat import CPSATOptimizer
from .dependency_order import DependencyOrderOptimizer
from .interval_dp import IntervalDPOptimizer


def create_optimizer(
    config: SchedulingConfig | None = None,
) -> BranchAndBoundOptimizer | CPSATOptimizer | DependencyOrderOptimizer:
    """Create the optimizer selected by the configuration.

    Args:
        config: Optional scheduling configuration (defaults to branch and bound)

    Returns:
        Optimizer instance ready to run
    """
    effective_config = config or SchedulingConfig()
    algorithm_type = effective_config.algorithm.type

    if algorithm_type == AlgorithmType.BRANCH_AND_BOUND:
        return BranchAndBoundOptimizer(effective_config)

    if algorithm_type == AlgorithmType.CP_SAT:
        return CPSATOptimizer(effective_config)

    if algorithm_type == AlgorithmType.DEPENDENCY_ORDER:
        return DependencyOrderOptimizer()

    msg = f"Unknown algorithm type: {algorithm_type}"
    raise ValueError(msg)


__all__ = [
    "BranchAndBoundOptimizer",
    "CPSATOptimizer",
    "DependencyOrderOptimizer",
    "IntervalDPOptimizer",
    "create_optimizer",
]
