from .config import ExperimentConfig
from .data import Leaderboard
from .errors import (
    ConnectivityInconsistent,
    DimensionMismatch,
    InvariantViolation,
    MalformedRecord,
    NeuroevolutionError,
)
from .evolutionary_loop import EvolutionEngine, EvolutionResult, setup_logging
from .experiment import Agent, Pool
from .network import Link, MutationType, Network, NetworkMutator, Node, NodeRole

__all__ = [
    "Agent",
    "ConnectivityInconsistent",
    "DimensionMismatch",
    "EvolutionEngine",
    "EvolutionResult",
    "ExperimentConfig",
    "InvariantViolation",
    "Leaderboard",
    "Link",
    "MalformedRecord",
    "MutationType",
    "Network",
    "NetworkMutator",
    "NeuroevolutionError",
    "Node",
    "NodeRole",
    "Pool",
    "setup_logging",
]
