import random
from enum import Enum
from typing import Optional

from .genes import Link, Node, NodeRole
from .network import Network
from ..errors import InvariantViolation


class MutationType(Enum):
    NONE = "none"
    MODIFY_WEIGHT = "modify_weight"
    ADD_LINK = "add_link"
    ADD_NODE = "add_node"
    DELETE_LINK = "delete_link"
    DELETE_NODE = "delete_node"


class NetworkMutator:
    """Applies weight and topology mutations to a single network.

    Operators that need a link or a hidden node to work on do nothing and
    return None when the network has none.
    """
    def __init__(self, network: Network, rng: random.Random):
        self.network = network
        self.rng = rng

    def apply(self, mutation: MutationType):
        if mutation == MutationType.MODIFY_WEIGHT:
            return self.mutate_weight()
        if mutation == MutationType.ADD_LINK:
            return self.mutate_new_link()
        if mutation == MutationType.ADD_NODE:
            return self.mutate_new_node()
        if mutation == MutationType.DELETE_LINK:
            return self.mutate_delete_link()
        if mutation == MutationType.DELETE_NODE:
            return self.mutate_delete_node()
        return None

    def _random_link(self) -> Optional[Link]:
        if not self.network.links:
            return None
        return self.rng.choice(list(self.network.links.values()))

    def mutate_weight(self) -> Optional[Link]:
        """Nudges, shrinks, flips or re-randomizes the weight of a random link.

        A soft-deleted link is always re-randomized, which re-enables it.
        """
        link = self._random_link()
        if link is None:
            return None

        behaviour = self.rng.randrange(4)
        if link.weight == 0.0:
            behaviour = 3

        if behaviour == 0:
            link.weight *= 1.0 + self.rng.uniform(0.05, 0.10)
        elif behaviour == 1:
            link.weight *= self.rng.uniform(0.90, 0.95)
        elif behaviour == 2:
            link.weight *= -1.0
        else:
            self.network.randomize_link_weight(link, self.rng)
        return link

    def mutate_new_node(self) -> Optional[Node]:
        """Splits a random link by inserting a new hidden node.

        The split link's weight survives on one of the two new links, picked
        at random; the other keeps its random weight.
        """
        link = self._random_link()
        if link is None:
            return None

        network = self.network
        source = network.nodes[link.source]
        target = network.nodes[link.target]

        hidden = network.create_node(NodeRole.HIDDEN)
        link_in = network.connect(source, hidden, self.rng)
        link_out = network.connect(hidden, target, self.rng)

        if self.rng.random() < 0.5:
            link_in.weight = link.weight
        else:
            link_out.weight = link.weight

        network.remove_link(link)
        network.check_connectivity()
        return hidden

    def mutate_new_link(self) -> Optional[Link]:
        """Links two random nodes, possibly a node to itself.

        Picking a pair that is already connected is a no-op, so this gets less
        effective as the network fills up.
        """
        nodes = list(self.network.nodes.values())
        if not nodes:
            return None

        source = self.rng.choice(nodes)
        target = self.rng.choice(nodes)
        if self.network.are_connected(source, target):
            return None

        link = self.network.connect(source, target, self.rng)
        self.network.check_connectivity()
        return link

    def mutate_delete_link(self) -> Optional[Link]:
        """Soft deletes a random link by zeroing its weight."""
        link = self._random_link()
        if link is None:
            return None
        link.weight = 0.0
        return link

    def mutate_delete_node(self) -> Optional[Node]:
        """Removes a random hidden node, bridging its predecessors to its successors."""
        network = self.network
        if not network.hidden_nodes:
            return None

        network.check_connectivity()

        hidden = self.rng.choice(network.hidden_nodes)
        predecessors = list(hidden.incoming)
        successors = list(hidden.outgoing)

        for source_id in predecessors:
            for target_id in successors:
                if source_id == hidden.id or target_id == hidden.id:
                    continue
                source = network.nodes[source_id]
                target = network.nodes[target_id]
                if not network.are_connected(source, target):
                    network.connect(source, target, self.rng)

        for link_id in list(hidden.incoming.values()) + list(hidden.outgoing.values()):
            # A self loop shows up on both sides
            if link_id in network.links:
                network.remove_link(network.links[link_id])

        if hidden.incoming or hidden.outgoing:
            raise InvariantViolation(
                f"Network #{network.id}: node #{hidden.id} has dangling links after removal"
            )

        network.remove_hidden_node(hidden)
        network.check_connectivity()
        return hidden
