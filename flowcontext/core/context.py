"""Potential context: what COULD be available at a state.

Built by the resolver from the flow graph structure and read by configuration
UIs. Variables are keyed by name plus branch path, so the same name arriving
through two branches is kept twice; object types are keyed by class name only.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

MAIN_FLOW = "main flow"


@dataclass(frozen=True)
class BranchPoint:
    """A traversal passing through a state with several connected outputs."""

    origin_state_name: str
    branch_index: int
    step_at_branch: int
    branch_label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin_state_name": self.origin_state_name,
            "branch_index": self.branch_index,
            "step_at_branch": self.step_at_branch,
            "branch_label": self.branch_label,
        }


BranchPath = Tuple[BranchPoint, ...]


def branch_path_signature(branch_path: BranchPath) -> str:
    """Canonical string for a branch path ("" for the main flow)."""
    return ">".join(f"{bp.origin_state_name}:{bp.branch_index}" for bp in branch_path)


def format_branch_path(branch_path: BranchPath) -> str:
    if not branch_path:
        return MAIN_FLOW
    parts = []
    for bp in branch_path:
        label = bp.branch_label or f"branch {bp.branch_index}"
        parts.append(f"{bp.origin_state_name}[{label}]")
    return " → ".join(parts)


@dataclass(frozen=True)
class PotentialVariable:
    name: str
    type: str
    source_state_name: str
    source_slot_index: int
    flow_distance: int
    input_slot_index: Optional[int] = None
    label: Optional[str] = None
    branch_path: BranchPath = ()

    def key(self) -> str:
        sig = branch_path_signature(self.branch_path)
        return f"{self.name}@{sig}" if sig else self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "source_state_name": self.source_state_name,
            "source_slot_index": self.source_slot_index,
            "flow_distance": self.flow_distance,
            "input_slot_index": self.input_slot_index,
            "label": self.label,
            "branch_path": [bp.to_dict() for bp in self.branch_path],
        }


@dataclass(frozen=True)
class PotentialObjectField:
    path: str
    display_name: str
    type: str
    writable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "display_name": self.display_name,
            "type": self.type,
            "writable": self.writable,
        }


@dataclass(frozen=True)
class PotentialObjectType:
    class_name: str
    fields: Tuple[PotentialObjectField, ...]
    source_state_name: str
    flow_distance: int
    branch_path: BranchPath = ()
    instance_id: Optional[str] = None
    is_solution_object: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_name": self.class_name,
            "fields": [f.to_dict() for f in self.fields],
            "source_state_name": self.source_state_name,
            "flow_distance": self.flow_distance,
            "branch_path": [bp.to_dict() for bp in self.branch_path],
            "instance_id": self.instance_id,
            "is_solution_object": self.is_solution_object,
        }


@dataclass
class PotentialContext:
    """
    Resolved context for one state.

    Read-only for consumers: use `clone()` to get an independent copy and
    `merge()` to combine contexts from parallel exploration.
    """

    solution_name: str
    state_name: str
    variables: Dict[str, PotentialVariable] = field(default_factory=dict)
    object_types: Dict[str, PotentialObjectType] = field(default_factory=dict)
    solution_object: Optional[PotentialObjectType] = None
    branch_paths: List[BranchPath] = field(default_factory=list)
    distance_from_initial: int = 0
    direct_upstream_states: List[str] = field(default_factory=list)
    all_upstream_states: List[str] = field(default_factory=list)
    # Exploration stopped at a configured bound; results may be incomplete.
    truncated: bool = False

    format_branch_path = staticmethod(format_branch_path)

    def _track_branch_path(self, branch_path: BranchPath) -> None:
        if branch_path and branch_path not in self.branch_paths:
            self.branch_paths.append(branch_path)

    def add_variable(self, variable: PotentialVariable) -> None:
        """Record a variable; an existing entry with a shorter or equal distance is kept."""
        key = variable.key()
        existing = self.variables.get(key)
        if existing is None or variable.flow_distance < existing.flow_distance:
            self.variables[key] = variable
        self._track_branch_path(variable.branch_path)

    def add_object_type(self, object_type: PotentialObjectType) -> None:
        if object_type.is_solution_object:
            self.set_solution_object(object_type)
            return
        existing = self.object_types.get(object_type.class_name)
        if existing is None or object_type.flow_distance < existing.flow_distance:
            self.object_types[object_type.class_name] = object_type

    def set_solution_object(self, object_type: PotentialObjectType) -> None:
        self.solution_object = replace(object_type, is_solution_object=True, branch_path=())

    def add_upstream_state(self, state_name: str, *, direct: bool) -> None:
        if direct and state_name not in self.direct_upstream_states:
            self.direct_upstream_states.append(state_name)
        if state_name not in self.all_upstream_states:
            self.all_upstream_states.append(state_name)

    # --- Queries ---

    def get_variables(self) -> List[PotentialVariable]:
        """All variables, nearest first, then by name."""
        return sorted(self.variables.values(), key=lambda v: (v.flow_distance, v.name))

    def get_variables_by_branch(self) -> Dict[str, List[PotentialVariable]]:
        out: Dict[str, List[PotentialVariable]] = {}
        for v in self.get_variables():
            out.setdefault(format_branch_path(v.branch_path), []).append(v)
        return out

    def get_variables_by_slot(self) -> Dict[int, List[PotentialVariable]]:
        """Variables grouped by the input slot they arrive on (-1 when unknown)."""
        grouped: Dict[int, List[PotentialVariable]] = {}
        for v in self.get_variables():
            idx = v.input_slot_index if v.input_slot_index is not None else -1
            grouped.setdefault(idx, []).append(v)
        return {k: grouped[k] for k in sorted(grouped)}

    def get_object_types(self) -> List[PotentialObjectType]:
        """Solution object first (if any), then object types nearest first."""
        types = sorted(self.object_types.values(), key=lambda o: (o.flow_distance, o.class_name))
        if self.solution_object is not None:
            return [self.solution_object] + types
        return types

    def get_all_object_fields(self) -> List[PotentialObjectField]:
        return [f for o in self.get_object_types() for f in o.fields]

    def has_branched_variables(self) -> bool:
        return len(self.branch_paths) > 0

    def get_branch_count(self) -> int:
        return len(self.branch_paths)

    def has_variable(self, name: str) -> bool:
        """True if `name` is available on any flow (main flow or a branch)."""
        return any(v.name == name for v in self.variables.values())

    def get_variable(self, name: str, branch_path: BranchPath = ()) -> Optional[PotentialVariable]:
        sig = branch_path_signature(branch_path)
        return self.variables.get(f"{name}@{sig}" if sig else name)

    def find_variables(self, name: str) -> List[PotentialVariable]:
        """Every entry for `name`, one per branch path, nearest first."""
        return [v for v in self.get_variables() if v.name == name]

    def has_object_type(self, class_name: str) -> bool:
        if self.solution_object is not None and self.solution_object.class_name == class_name:
            return True
        return class_name in self.object_types

    def get_object_type(self, class_name: str) -> Optional[PotentialObjectType]:
        if self.solution_object is not None and self.solution_object.class_name == class_name:
            return self.solution_object
        return self.object_types.get(class_name)

    # --- Combination ---

    def merge(self, other: "PotentialContext") -> None:
        """Fold `other` into this context (parallel branch merging)."""
        for v in other.variables.values():
            self.add_variable(v)
        for o in other.object_types.values():
            self.add_object_type(o)
        if self.solution_object is None and other.solution_object is not None:
            self.solution_object = other.solution_object
        for name in other.direct_upstream_states:
            self.add_upstream_state(name, direct=True)
        for name in other.all_upstream_states:
            self.add_upstream_state(name, direct=False)
        for path in other.branch_paths:
            self._track_branch_path(path)
        self.distance_from_initial = max(self.distance_from_initial, other.distance_from_initial)
        self.truncated = self.truncated or other.truncated

    def clone(self) -> "PotentialContext":
        """Independent copy; mutating the clone never touches this context."""
        return PotentialContext(
            solution_name=self.solution_name,
            state_name=self.state_name,
            variables=dict(self.variables),
            object_types=dict(self.object_types),
            solution_object=self.solution_object,
            branch_paths=list(self.branch_paths),
            distance_from_initial=self.distance_from_initial,
            direct_upstream_states=list(self.direct_upstream_states),
            all_upstream_states=list(self.all_upstream_states),
            truncated=self.truncated,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "solution_name": self.solution_name,
            "state_name": self.state_name,
            "variables": [v.to_dict() for v in self.get_variables()],
            "object_types": [o.to_dict() for o in self.get_object_types()],
            "branch_paths": [[bp.to_dict() for bp in p] for p in self.branch_paths],
            "distance_from_initial": self.distance_from_initial,
            "direct_upstream_states": list(self.direct_upstream_states),
            "all_upstream_states": list(self.all_upstream_states),
            "truncated": self.truncated,
        }
