"""
LV Network Topology
===================

Assembles source, nodes, cables and cable types into a radial
four-wire feeder, and provides the path searches the engine needs.
"""

from collections import deque
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple
import math

from .cable import EARTH_RADIUS_M, Cable, CableType, Coordinate
from .node import Node
from .phases import PhaseValues


@dataclass
class SpanningTree:
    """
    Breadth-first tree rooted at the source.

    Attributes:
        source_id: Root node
        order: Reachable node ids in BFS order (source first)
        parent: {node_id: parent node_id}
        parent_cable: {node_id: cable feeding the node from its parent}
    """
    source_id: str
    order: List[str] = field(default_factory=list)
    parent: Dict[str, str] = field(default_factory=dict)
    parent_cable: Dict[str, Cable] = field(default_factory=dict)

    def reaches(self, node_id: str) -> bool:
        return node_id == self.source_id or node_id in self.parent


@dataclass
class LVNetwork:
    """
    Complete LV feeder model.

    The network is expected to be radial: the path from the source to
    any reachable node is unique.

    Attributes:
        name: Network identifier
        nodes: List of nodes (exactly one flagged is_source)
        cables: List of cable sections
        cable_types: Dict of cable types by id
        nominal_voltage_v: Phase-to-neutral nominal voltage (V)
    """
    name: str = "LVNetwork"
    nodes: List[Node] = field(default_factory=list)
    cables: List[Cable] = field(default_factory=list)
    cable_types: Dict[str, CableType] = field(default_factory=dict)
    nominal_voltage_v: float = 230.0

    def add_node(self, node: Node) -> None:
        """Add a node to the network."""
        if self.get_node(node.id) is not None:
            raise ValueError(f"Duplicate node id: {node.id}")
        self.nodes.append(node)

    def add_cable_type(self, cable_type: CableType) -> None:
        """Register a cable type."""
        self.cable_types[cable_type.id] = cable_type

    def add_cable(self, cable: Cable) -> None:
        """Add a cable; both ends must already exist."""
        for end in (cable.node_a_id, cable.node_b_id):
            if self.get_node(end) is None:
                raise ValueError(f"Cable {cable.id} references unknown node {end}")
        self.cables.append(cable)

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_cable_type(self, type_id: str) -> Optional[CableType]:
        return self.cable_types.get(type_id)

    @property
    def source(self) -> Optional[Node]:
        """The source node (first node flagged is_source)."""
        for node in self.nodes:
            if node.is_source:
                return node
        return None

    def spanning_tree(self) -> Optional[SpanningTree]:
        """
        Breadth-first search from the source over the cable graph.

        Returns:
            SpanningTree, or None if the network has no source
        """
        source = self.source
        if source is None:
            return None

        tree = SpanningTree(source_id=source.id, order=[source.id])
        visited = {source.id}
        queue = deque([source.id])

        while queue:
            current = queue.popleft()
            for cable in self.cables:
                neighbor = cable.other_end(current)
                if neighbor is None or neighbor in visited:
                    continue
                visited.add(neighbor)
                tree.parent[neighbor] = current
                tree.parent_cable[neighbor] = cable
                tree.order.append(neighbor)
                queue.append(neighbor)

        return tree

    def path_to_source(self, node_id: str) -> Optional[List[Cable]]:
        """
        Cables on the unique path from a node back to the source.

        Returns:
            Cables ordered from the node towards the source (empty for
            the source itself), or None if unreachable / no source
        """
        tree = self.spanning_tree()
        if tree is None or not tree.reaches(node_id):
            return None

        path = []
        current = node_id
        while current != tree.source_id:
            path.append(tree.parent_cable[current])
            current = tree.parent[current]
        return path

    def upstream_cable(self, node_id: str) -> Optional[Cable]:
        """Cable feeding a node from the source side."""
        tree = self.spanning_tree()
        if tree is None:
            return None
        return tree.parent_cable.get(node_id)

    def with_node_power(
        self,
        node_id: str,
        charges_kva: Optional[PhaseValues] = None,
        productions_kva: Optional[PhaseValues] = None,
    ) -> "LVNetwork":
        """
        Copy of the network with one node's per-phase power replaced.

        The input network is left untouched.
        """
        if self.get_node(node_id) is None:
            raise ValueError(f"Unknown node: {node_id}")

        nodes = []
        for node in self.nodes:
            if node.id == node_id:
                node = replace(
                    node,
                    charges_kva=charges_kva if charges_kva is not None else node.charges_kva,
                    productions_kva=productions_kva if productions_kva is not None else node.productions_kva,
                )
            nodes.append(node)
        return replace(self, nodes=nodes, cables=list(self.cables), cable_types=dict(self.cable_types))

    def get_topology_summary(self) -> dict:
        """
        Generate a summary of the topology for display.

        Returns:
            Dict with network parameters
        """
        tree = self.spanning_tree()
        reachable = set(tree.order) if tree else set()
        return {
            "name": self.name,
            "nominal_voltage_v": self.nominal_voltage_v,
            "source": self.source.id if self.source else None,
            "nodes": {
                "count": len(self.nodes),
                "unreachable": [n.id for n in self.nodes if n.id not in reachable],
            },
            "cables": {
                "count": len(self.cables),
                "total_length_m": sum(c.route_length_m for c in self.cables),
            },
            "cable_types": sorted(self.cable_types),
        }


def create_radial_feeder(
    cable_type: CableType,
    section_lengths_m: Sequence[float],
    charges_kva: Sequence[PhaseValues],
    productions_kva: Optional[Sequence[PhaseValues]] = None,
    origin: Tuple[float, float] = (50.0, 4.0),
    name: str = "Feeder",
) -> LVNetwork:
    """
    Create a straight radial feeder running north from the source.

    Creates:
    - Source node 'SRC' at the origin
    - Nodes 'N1'..'Nk', one per section, with the given per-phase loads
    - Cables 'C1'..'Ck' routed along the meridian, so the haversine
      length equals the requested section length

    Args:
        cable_type: Cable type used for every section
        section_lengths_m: Length of each section (m)
        charges_kva: Per-phase load of each downstream node
        productions_kva: Per-phase production of each downstream node
        origin: (lat, lng) of the source
        name: Network name

    Returns:
        Configured LVNetwork
    """
    if len(charges_kva) != len(section_lengths_m):
        raise ValueError("charges_kva must have one entry per section")
    if productions_kva is None:
        productions_kva = [PhaseValues() for _ in section_lengths_m]

    # Degrees of latitude per meter along a meridian
    deg_per_m = 180.0 / (math.pi * EARTH_RADIUS_M)

    lat0, lng0 = origin
    net = LVNetwork(name=name)
    net.add_cable_type(cable_type)
    net.add_node(Node(id="SRC", lat=lat0, lng=lng0, name="Source", is_source=True))

    prev_id, prev_lat = "SRC", lat0
    for i, length_m in enumerate(section_lengths_m, start=1):
        lat = prev_lat + length_m * deg_per_m
        node_id = f"N{i}"
        net.add_node(Node(
            id=node_id,
            lat=lat,
            lng=lng0,
            charges_kva=charges_kva[i - 1],
            productions_kva=productions_kva[i - 1],
        ))
        net.add_cable(Cable(
            id=f"C{i}",
            node_a_id=prev_id,
            node_b_id=node_id,
            type_id=cable_type.id,
            coordinates=[Coordinate(prev_lat, lng0), Coordinate(lat, lng0)],
        ))
        prev_id, prev_lat = node_id, lat

    return net
