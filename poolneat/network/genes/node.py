from enum import Enum
from typing import Dict


class NodeRole(str, Enum):
    INPUT = "Input"
    BIAS = "Bias"
    HIDDEN = "Hidden"
    OUTPUT = "Output"


class Node:
    """Represents a node (neuron) in the network.

    Links are referenced by id. `incoming` is keyed by source node id and
    `outgoing` by target node id, so two nodes share at most one link per
    direction.
    """
    def __init__(self, id: int, role: NodeRole = NodeRole.HIDDEN):
        self.id = id
        self.role = role
        self.activation_current = 0.0
        self.activation_previous = 0.0
        self.incoming_activity = 0.0
        self.incoming: Dict[int, int] = {}
        self.outgoing: Dict[int, int] = {}

        if role == NodeRole.BIAS:
            self.activation_current = 1.0
            self.activation_previous = 1.0

    def copy(self) -> "Node":
        node = Node(self.id, self.role)
        node.activation_current = self.activation_current
        node.activation_previous = self.activation_previous
        node.incoming = dict(self.incoming)
        node.outgoing = dict(self.outgoing)
        return node

    def __repr__(self):
        return f"Node(id={self.id}, role='{self.role.value}', in={len(self.incoming)}, out={len(self.outgoing)})"
