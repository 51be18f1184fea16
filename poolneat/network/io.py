"""Text representation of networks.

A network is written as:

    Network #<id>
    Node Count: <n>
    Node #<id>, <Role>          (n lines)
    Link Count: <m>
    Link #<id>,<source>,<target>,<weight>   (m lines)

Several networks in one file are separated by a blank line. Lines starting
with `#` are comments.
"""

import os
from typing import Iterable, Iterator, List, Tuple

from .genes import Link, Node, NodeRole
from .network import DEFAULT_WEIGHT_RANGE, Network
from ..errors import MalformedRecord

COMMENT = "#"
LABEL_NETWORK_ID = "Network #"
LABEL_NODE_COUNT = "Node Count: "
LABEL_NODE_ID = "Node #"
LABEL_LINK_COUNT = "Link Count: "
LABEL_LINK_ID = "Link #"
DELIMITER = ","


# --- writing ---
def dump_node(node: Node) -> str:
    return f"{LABEL_NODE_ID}{node.id}, {node.role.value}"


def dump_link(link: Link) -> str:
    return DELIMITER.join(
        [f"{LABEL_LINK_ID}{link.id}", str(link.source), str(link.target), repr(float(link.weight))]
    )


def dumps(network: Network) -> str:
    lines = [f"{LABEL_NETWORK_ID}{network.id}", f"{LABEL_NODE_COUNT}{network.node_count}"]
    lines.extend(dump_node(node) for node in network.nodes.values())
    lines.append(f"{LABEL_LINK_COUNT}{network.link_count}")
    lines.extend(dump_link(link) for link in network.links.values())
    return "\n".join(lines) + "\n"


def save(networks: Iterable[Network], path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        for network in networks:
            f.write(dumps(network))
            f.write("\n")


# --- reading ---
def _parse_int(token: str, line_number: int, line: str) -> int:
    try:
        return int(token.strip())
    except ValueError:
        raise MalformedRecord(f"expected an integer, got {token.strip()!r}", line_number, line) from None


def _parse_float(token: str, line_number: int, line: str) -> float:
    try:
        return float(token.strip())
    except ValueError:
        raise MalformedRecord(f"expected a number, got {token.strip()!r}", line_number, line) from None


def _parse_role(token: str, line_number: int, line: str) -> NodeRole:
    try:
        return NodeRole(token.strip())
    except ValueError:
        raise MalformedRecord(f"unknown node role {token.strip()!r}", line_number, line) from None


def _strip_label(line: str, label: str, line_number: int) -> str:
    if not line.startswith(label):
        raise MalformedRecord(f"expected {label.strip()!r}", line_number, line)
    return line[len(label):]


def _parse_block(
    block: List[Tuple[int, str]],
    weight_range: Tuple[float, float],
    verify: bool,
) -> Network:
    lines = iter(block)

    def next_line(what: str) -> Tuple[int, str]:
        try:
            return next(lines)
        except StopIteration:
            last = block[-1][0] if block else None
            raise MalformedRecord(f"unexpected end of network, expected {what}", last) from None

    n, line = next_line("a network id")
    network = Network(
        network_id=_parse_int(_strip_label(line, LABEL_NETWORK_ID, n), n, line),
        weight_range=weight_range,
        verify=verify,
    )

    n, line = next_line("a node count")
    num_nodes = _parse_int(_strip_label(line, LABEL_NODE_COUNT, n), n, line)
    for _ in range(num_nodes):
        n, line = next_line("a node")
        fields = _strip_label(line, LABEL_NODE_ID, n).split(DELIMITER)
        if len(fields) != 2:
            raise MalformedRecord("expected '<id>, <role>'", n, line)
        node = Node(_parse_int(fields[0], n, line), _parse_role(fields[1], n, line))
        if node.id in network.nodes:
            raise MalformedRecord(f"duplicate node #{node.id}", n, line)
        if node.role == NodeRole.BIAS and network.bias_node is not None:
            raise MalformedRecord("a network has a single bias node", n, line)
        network.add_node(node)

    n, line = next_line("a link count")
    num_links = _parse_int(_strip_label(line, LABEL_LINK_COUNT, n), n, line)
    for _ in range(num_links):
        n, line = next_line("a link")
        fields = _strip_label(line, LABEL_LINK_ID, n).split(DELIMITER)
        if len(fields) != 4:
            raise MalformedRecord("expected '<id>,<source>,<target>,<weight>'", n, line)
        link = Link(
            _parse_int(fields[0], n, line),
            _parse_int(fields[1], n, line),
            _parse_int(fields[2], n, line),
            _parse_float(fields[3], n, line),
        )
        if link.source not in network.nodes or link.target not in network.nodes:
            raise MalformedRecord(f"link #{link.id} refers to an unknown node", n, line)
        if link.id in network.links or link.target in network.nodes[link.source].outgoing:
            raise MalformedRecord(f"duplicate link #{link.id}", n, line)
        network.add_link(link)

    leftover = next(lines, None)
    if leftover is not None:
        raise MalformedRecord("unexpected line after the last link", *leftover)

    network.check_connectivity()
    return network


def _blocks(lines: Iterable[str]) -> Iterator[List[Tuple[int, str]]]:
    block: List[Tuple[int, str]] = []
    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            if block:
                yield block
                block = []
            continue
        if line.startswith(COMMENT):
            continue
        block.append((line_number, line))
    if block:
        yield block


def loads(
    text: str,
    weight_range: Tuple[float, float] = DEFAULT_WEIGHT_RANGE,
    verify: bool = True,
) -> List[Network]:
    """Parses every network in `text`."""
    return [_parse_block(block, weight_range, verify) for block in _blocks(text.splitlines())]


def load(
    path: str,
    weight_range: Tuple[float, float] = DEFAULT_WEIGHT_RANGE,
    verify: bool = True,
) -> List[Network]:
    with open(path, "r") as f:
        return loads(f.read(), weight_range=weight_range, verify=verify)
