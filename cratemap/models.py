"""Architecture map data model.

Everything handed to readers is immutable: frozen dataclasses, tuples,
frozensets and read-only mappings. Nodes refer to each other by id only;
edges are looked up through the map.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping


class ModuleType(str, Enum):
    """Closed classification of a node, derived from its path."""

    CORE = "core"
    TEST = "test"
    EXAMPLE = "example"
    BENCH = "bench"
    DOC = "doc"
    OTHER = "other"


class Visibility(str, Enum):
    PUBLIC = "pub"
    CRATE = "pub(crate)"
    RESTRICTED = "pub(restricted)"  # pub(super), pub(self), pub(in path)
    PRIVATE = "private"


class StatusKind(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class ParseOutcome(str, Enum):
    OK = "ok"
    ERROR = "error"
    SKIPPED = "skipped"


class ReferenceKind(str, Enum):
    """How a source unit refers to another module. Declaration order is priority."""

    IMPORT = "import"  # use / extern crate
    PATH = "path"  # inline crate::/super::/self:: path in code
    MODULE = "module"  # mod child;


REFERENCE_PRIORITY: tuple[ReferenceKind, ...] = (
    ReferenceKind.IMPORT,
    ReferenceKind.PATH,
    ReferenceKind.MODULE,
)


@dataclass(frozen=True)
class NodeStatus:
    kind: StatusKind
    reasons: tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> NodeStatus:
        return cls(StatusKind.OK)

    @classmethod
    def warning(cls, reasons: Iterable[str]) -> NodeStatus:
        return cls(StatusKind.WARNING, tuple(reasons))

    @classmethod
    def error(cls, reason: str) -> NodeStatus:
        return cls(StatusKind.ERROR, (reason,))

    @property
    def reason(self) -> str | None:
        """First reason, if any (the only one for Error)."""
        return self.reasons[0] if self.reasons else None


@dataclass(frozen=True)
class ParseStatus:
    outcome: ParseOutcome
    reason: str | None = None

    @classmethod
    def ok(cls) -> ParseStatus:
        return cls(ParseOutcome.OK)

    @classmethod
    def error(cls, reason: str) -> ParseStatus:
        return cls(ParseOutcome.ERROR, reason)

    @classmethod
    def skipped(cls, reason: str) -> ParseStatus:
        return cls(ParseOutcome.SKIPPED, reason)


@dataclass(frozen=True)
class FunctionInfo:
    name: str
    line_span: tuple[int, int]
    parameter_count: int
    cyclomatic_complexity: int
    visibility: Visibility
    has_doc: bool
    owner: str | None = None  # impl/trait type for methods
    cognitive_complexity: int = 0
    is_async: bool = False
    attribute_tags: tuple[str, ...] = ()

    @property
    def lines(self) -> int:
        start, end = self.line_span
        return max(1, end - start + 1)


@dataclass(frozen=True)
class StructInfo:
    name: str
    field_count: int
    visibility: Visibility
    attribute_tags: tuple[str, ...] = ()
    derives: tuple[str, ...] = ()
    has_doc: bool = False


@dataclass(frozen=True)
class EnumInfo:
    name: str
    variant_count: int
    visibility: Visibility = Visibility.PRIVATE
    derives: tuple[str, ...] = ()
    has_doc: bool = False


@dataclass(frozen=True)
class TraitInfo:
    name: str
    method_count: int
    visibility: Visibility = Visibility.PRIVATE
    supertraits: tuple[str, ...] = ()
    has_doc: bool = False


@dataclass(frozen=True)
class Reference:
    """One normalized dependency reference, e.g. ``crate::scanner::Walker``."""

    path: str
    kind: ReferenceKind
    line: int
    anchored: bool = False  # written as crate::/self::/super::

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.path.split("::"))


@dataclass(frozen=True)
class SourceUnit:
    """Parse result for one file. Lives only until the graph is built."""

    file_path: str
    module_path: str
    size: int
    status: ParseStatus
    modified: datetime | None = None
    line_count: int = 0
    lines_of_code: int = 0
    functions: tuple[FunctionInfo, ...] = ()
    structs: tuple[StructInfo, ...] = ()
    enums: tuple[EnumInfo, ...] = ()
    traits: tuple[TraitInfo, ...] = ()
    references: tuple[Reference, ...] = ()
    declared_modules: tuple[str, ...] = ()

    @property
    def skipped(self) -> bool:
        return self.status.outcome is ParseOutcome.SKIPPED


@dataclass(frozen=True)
class NodeMetrics:
    lines_of_code: int = 0
    line_count: int = 0
    function_count: int = 0
    struct_count: int = 0
    enum_count: int = 0
    trait_count: int = 0
    complexity: float | None = None  # None: node has no functions
    cognitive_complexity: int = 0
    doc_density: float = 0.0
    maintainability_index: float = 1.0
    fan_in: int = 0
    fan_out: int = 0
    external_dependencies: int = 0


@dataclass(frozen=True)
class ArchitectureNode:
    id: str
    name: str
    module_type: ModuleType
    file_path: str
    dependencies: frozenset[str]
    dependents: frozenset[str]
    status: NodeStatus
    metrics: NodeMetrics
    external_dependencies: int = 0
    last_modified: datetime | None = None
    functions: tuple[FunctionInfo, ...] = ()
    structs: tuple[StructInfo, ...] = ()
    enums: tuple[EnumInfo, ...] = ()
    traits: tuple[TraitInfo, ...] = ()
    declared_modules: tuple[str, ...] = ()


@dataclass(frozen=True)
class DependencyEdge:
    source: str
    target: str
    strength: int
    kind: ReferenceKind
    is_circular: bool = False


@dataclass(frozen=True)
class ArchitectureMetrics:
    total_functions: int = 0
    total_structs: int = 0
    total_enums: int = 0
    total_traits: int = 0
    max_complexity: float = 0.0
    min_complexity: float = 0.0
    average_complexity: float = 0.0
    dependency_density: float = 0.0
    average_dependencies: float = 0.0  # edges per node
    most_connected_node: str | None = None
    modularity_score: float = 1.0
    maintainability_index: float = 1.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ArchitectureMap:
    """Published snapshot of one complete scan."""

    nodes: Mapping[str, ArchitectureNode]
    edges: tuple[DependencyEdge, ...]
    scan_timestamp: datetime
    total_modules: int
    total_lines: int
    average_complexity: float
    cycles: tuple[tuple[str, ...], ...]
    metrics: ArchitectureMetrics
    cycles_truncated: bool = False
    skipped_files: int = 0
    project_name: str | None = None

    @classmethod
    def empty(cls, project_name: str | None = None) -> ArchitectureMap:
        """Snapshot served before the first scan completes."""
        return cls(
            nodes=MappingProxyType({}),
            edges=(),
            scan_timestamp=_utc_now(),
            total_modules=0,
            total_lines=0,
            average_complexity=0.0,
            cycles=(),
            metrics=ArchitectureMetrics(),
            project_name=project_name,
        )

    def node(self, node_id: str) -> ArchitectureNode | None:
        return self.nodes.get(node_id)

    def edges_from(self, node_id: str) -> list[DependencyEdge]:
        return [e for e in self.edges if e.source == node_id]

    def edges_to(self, node_id: str) -> list[DependencyEdge]:
        return [e for e in self.edges if e.target == node_id]

    def nodes_with_status(self, kind: StatusKind) -> list[ArchitectureNode]:
        return [n for n in self.nodes.values() if n.status.kind is kind]
