from .genes import Link, Node, NodeRole
from .mutator import MutationType, NetworkMutator
from .network import Network

__all__ = ["Link", "MutationType", "Network", "NetworkMutator", "Node", "NodeRole"]
