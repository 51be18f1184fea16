from .link import Link
from .node import Node, NodeRole

__all__ = ["Link", "Node", "NodeRole"]
