"""Public API facade: JSON-ready views of the architecture map."""

from cratemap.api.architecture import (
    cycle_report,
    edge_to_dict,
    get_node,
    graph_view,
    node_to_dict,
    snapshot_to_dict,
)

__all__ = [
    "cycle_report",
    "edge_to_dict",
    "get_node",
    "graph_view",
    "node_to_dict",
    "snapshot_to_dict",
]
