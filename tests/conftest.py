import random
from typing import Iterable, Tuple

import pytest

from poolneat.network import Link, Network, Node, NodeRole


def build_network(
    nodes: Iterable[Tuple[int, NodeRole]],
    links: Iterable[Tuple[int, int, int, float]],
    network_id: int = 0,
) -> Network:
    """Builds a network from (id, role) nodes and (id, source, target, weight) links."""
    network = Network(network_id=network_id)
    for node_id, role in nodes:
        network.add_node(Node(node_id, role))
    for link_id, source, target, weight in links:
        network.add_link(Link(link_id, source, target, weight))
    network.verify_connectivity()
    return network


class FixedRandom(random.Random):
    """A generator whose `random()` always returns the same value."""
    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def rng():
    return random.Random(1234)
