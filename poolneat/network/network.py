import random
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from .genes import Link, Node, NodeRole
from ..activations import sigmoid01
from ..errors import ConnectivityInconsistent, DimensionMismatch, InvariantViolation

DEFAULT_WEIGHT_RANGE = (-1.0, 1.0)


class Network:
    """A mutable, possibly recurrent neural network.

    Nodes and links are owned by the network and addressed by integer ids
    that are unique within it. Adjacency is kept on both ends of every link:
    `source.outgoing[target.id]` and `target.incoming[source.id]` always hold
    the same link id.
    """
    def __init__(
        self,
        network_id: int = 0,
        weight_range: Tuple[float, float] = DEFAULT_WEIGHT_RANGE,
        verify: bool = True,
    ):
        self.id = network_id
        self.weight_range = weight_range
        self.verify = verify

        self.nodes: Dict[int, Node] = {}
        self.links: Dict[int, Link] = {}

        self.bias_node: Optional[Node] = None
        self.input_nodes: List[Node] = []
        self.input_and_bias_nodes: List[Node] = []
        self.hidden_nodes: List[Node] = []
        self.output_nodes: List[Node] = []

        self.node_idx = 0
        self.link_idx = 0

    @classmethod
    def minimal(
        cls,
        num_inputs: int,
        num_outputs: int,
        rng: random.Random,
        network_id: int = 0,
        weight_range: Tuple[float, float] = DEFAULT_WEIGHT_RANGE,
        verify: bool = True,
    ) -> "Network":
        """Bias, inputs and outputs, with every input (and the bias) linked to every output."""
        network = cls(network_id=network_id, weight_range=weight_range, verify=verify)

        network.create_node(NodeRole.BIAS)
        for _ in range(num_inputs):
            network.create_node(NodeRole.INPUT)
        for _ in range(num_outputs):
            network.create_node(NodeRole.OUTPUT)

        for source in network.input_and_bias_nodes:
            for target in network.output_nodes:
                network.connect(source, target, rng)

        return network

    # --- properties ---
    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def link_count(self) -> int:
        return len(self.links)

    @property
    def num_inputs(self) -> int:
        return len(self.input_nodes)

    @property
    def num_outputs(self) -> int:
        return len(self.output_nodes)

    # --- construction ---
    def add_node(self, node: Node) -> Node:
        """Registers a node and files it under its role."""
        if node.id in self.nodes:
            raise InvariantViolation(f"Network #{self.id} already has node #{node.id}")

        self.nodes[node.id] = node
        if node.role == NodeRole.INPUT:
            self.input_nodes.append(node)
            self.input_and_bias_nodes.append(node)
        elif node.role == NodeRole.BIAS:
            if self.bias_node is not None:
                raise InvariantViolation(f"Network #{self.id} already has a bias node")
            self.bias_node = node
            self.input_and_bias_nodes.append(node)
            node.activation_current = 1.0
            node.activation_previous = 1.0
        elif node.role == NodeRole.HIDDEN:
            self.hidden_nodes.append(node)
        else:
            self.output_nodes.append(node)

        self.node_idx = max(self.node_idx, node.id + 1)
        return node

    def create_node(self, role: NodeRole) -> Node:
        """Creates and registers a node with a fresh id."""
        node = Node(self.node_idx, role)
        self.node_idx += 1
        return self.add_node(node)

    def add_link(self, link: Link) -> Link:
        """Registers a link and hooks it into both endpoints."""
        if link.id in self.links:
            raise InvariantViolation(f"Network #{self.id} already has link #{link.id}")

        source = self.nodes[link.source]
        target = self.nodes[link.target]
        if link.target in source.outgoing or link.source in target.incoming:
            raise InvariantViolation(
                f"Network #{self.id}: nodes #{link.source} and #{link.target} are already connected"
            )

        self.links[link.id] = link
        source.outgoing[target.id] = link.id
        target.incoming[source.id] = link.id

        self.link_idx = max(self.link_idx, link.id + 1)
        return link

    def connect(self, source: Node, target: Node, rng: random.Random) -> Link:
        """Creates a randomly weighted link from source to target."""
        link = Link(self.link_idx, source.id, target.id)
        self.link_idx += 1
        self.randomize_link_weight(link, rng)
        return self.add_link(link)

    def remove_link(self, link: Link) -> None:
        """Detaches a link from both endpoints and forgets it."""
        source = self.nodes.get(link.source)
        target = self.nodes.get(link.target)
        if source is not None and source.outgoing.get(link.target) == link.id:
            del source.outgoing[link.target]
        if target is not None and target.incoming.get(link.source) == link.id:
            del target.incoming[link.source]
        del self.links[link.id]

    def remove_hidden_node(self, node: Node) -> None:
        """Forgets a hidden node. Its links must already be gone."""
        if node.role != NodeRole.HIDDEN:
            raise InvariantViolation(f"Only hidden nodes can be removed, got {node!r}")
        if node.incoming or node.outgoing:
            raise InvariantViolation(f"Network #{self.id}: node #{node.id} still has dangling links")
        del self.nodes[node.id]
        self.hidden_nodes.remove(node)

    # --- weights ---
    def randomize_link_weight(self, link: Link, rng: random.Random) -> None:
        link.weight = rng.uniform(*self.weight_range)

    def randomize_weights(self, rng: random.Random) -> None:
        for link in self.links.values():
            self.randomize_link_weight(link, rng)

    # --- activation ---
    def compute_activation(self, inputs: Sequence[float]) -> List[float]:
        """Propagates one tick of activity and returns the output activations.

        Every output is resolved depth first. A source node that is already on
        the current resolution path closes a recurrent loop: it is not
        descended into and contributes its activation from the previous tick.
        Each node is resolved at most once per call.
        """
        if len(inputs) != len(self.input_nodes):
            raise DimensionMismatch(
                f"Network #{self.id} expects {len(self.input_nodes)} inputs, got {len(inputs)}"
            )

        for node, value in zip(self.input_nodes, inputs):
            node.activation_previous = node.activation_current
            node.activation_current = float(value)

        resolved = {node.id for node in self.input_and_bias_nodes}
        for node in self.output_nodes:
            if node.id not in resolved:
                self._resolve(node, resolved)

        return [node.activation_current for node in self.output_nodes]

    def _resolve(self, root: Node, resolved: set) -> None:
        root.incoming_activity = 0.0
        path = {root.id}
        stack = [(root, iter(list(root.incoming.items())))]

        while stack:
            node, pending = stack[-1]
            for source_id, link_id in pending:
                weight = self.links[link_id].weight
                source = self.nodes[source_id]
                if source_id in path:
                    # Not updated yet this tick, so this is last tick's activation
                    node.incoming_activity += source.activation_current * weight
                elif source_id in resolved:
                    node.incoming_activity += source.activation_current * weight
                else:
                    # Contribution is added once the source is resolved
                    source.incoming_activity = 0.0
                    path.add(source_id)
                    stack.append((source, iter(list(source.incoming.items()))))
                    break
            else:
                stack.pop()
                path.discard(node.id)
                node.activation_previous = node.activation_current
                node.activation_current = sigmoid01(node.incoming_activity)
                resolved.add(node.id)

                if stack:
                    parent = stack[-1][0]
                    weight = self.links[parent.incoming[node.id]].weight
                    parent.incoming_activity += node.activation_current * weight

    def reset_activations(self) -> None:
        """Clears all activity. The bias stays at 1.0."""
        for node in self.nodes.values():
            if node.role == NodeRole.BIAS:
                continue
            node.activation_current = 0.0
            node.activation_previous = 0.0
            node.incoming_activity = 0.0

    # --- queries ---
    def are_connected(self, source: Node, target: Node) -> bool:
        """Returns True if source links to target. Raises if the two ends disagree."""
        source_to_target = target.id in source.outgoing
        target_from_source = source.id in target.incoming
        if source_to_target != target_from_source:
            raise ConnectivityInconsistent(
                f"Network #{self.id}: node #{source.id} and node #{target.id} disagree about their link"
            )
        return source_to_target

    def verify_connectivity(self) -> None:
        """Checks that every node and link agrees on the shape of the graph. O(N^2)."""
        for source in self.nodes.values():
            for target in self.nodes.values():
                self.are_connected(source, target)

        for link in self.links.values():
            if link.source not in self.nodes or link.target not in self.nodes:
                raise ConnectivityInconsistent(
                    f"Network #{self.id}: link #{link.id} refers to a missing node"
                )
            source = self.nodes[link.source]
            target = self.nodes[link.target]
            if source.outgoing.get(target.id) != link.id or target.incoming.get(source.id) != link.id:
                raise ConnectivityInconsistent(
                    f"Network #{self.id}: link #{link.id} is not recorded by its endpoints"
                )

        link_ends = sum(len(n.incoming) + len(n.outgoing) for n in self.nodes.values())
        if link_ends != 2 * len(self.links):
            raise ConnectivityInconsistent(
                f"Network #{self.id}: nodes record {link_ends} link ends for {len(self.links)} links"
            )

    def check_connectivity(self) -> None:
        """Runs `verify_connectivity` if verification is enabled for this network."""
        if self.verify:
            self.verify_connectivity()

    def copy(self, network_id: Optional[int] = None) -> "Network":
        """Returns a deep copy with identical ids and weights."""
        other = Network(
            network_id=self.id if network_id is None else network_id,
            weight_range=self.weight_range,
            verify=self.verify,
        )
        for node in self.nodes.values():
            other.add_node(node.copy())
        for link in self.links.values():
            other.links[link.id] = link.copy()

        other.node_idx = self.node_idx
        other.link_idx = self.link_idx

        other.check_connectivity()
        return other

    def iter_links(self, enabled_only: bool = False) -> Iterable[Link]:
        for link in self.links.values():
            if enabled_only and not link.enabled:
                continue
            yield link

    def to_digraph(self, enabled_only: bool = True) -> nx.DiGraph:
        """Builds a networkx view of the topology."""
        G = nx.DiGraph()
        for node_id, node in self.nodes.items():
            G.add_node(node_id, role=node.role.value)
        for link in self.iter_links(enabled_only=enabled_only):
            G.add_edge(link.source, link.target, weight=link.weight, id=link.id)
        return G

    def is_recurrent(self) -> bool:
        """True if the active links contain a cycle (self loops included)."""
        return not nx.is_directed_acyclic_graph(self.to_digraph())

    def __repr__(self):
        return (
            f"Network(id={self.id}, nodes={self.node_count}, links={self.link_count}, "
            f"hidden={len(self.hidden_nodes)})"
        )

    def __str__(self):
        from .io import dumps
        return dumps(self)
