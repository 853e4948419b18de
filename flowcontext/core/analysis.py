"""Context resolution.

Walks the solution graph backward from a target state and collects the
variables and object types that could reach it.

- Every (state, branch path) pair is expanded at most once
- The walk is breadth-first, so each pair is expanded at its minimal depth
- Branch points are recorded when the walk leaves a state through one of
  several connected outputs
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Any, Deque, List, Optional, Set, Tuple

from .config import ResolverConfig
from .context import (
    BranchPath,
    BranchPoint,
    PotentialContext,
    PotentialObjectField,
    PotentialObjectType,
    PotentialVariable,
    branch_path_signature,
)
from .kinds import StateKindRegistry, default_registry
from .models import ConnectorSource, Graph, Slot, State

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_PY_TYPE_NAMES = (
    (bool, "bool"),
    (int, "int"),
    (float, "float"),
    (str, "str"),
    (list, "list"),
    (tuple, "list"),
    (dict, "dict"),
)


def instance_name(class_name: str) -> str:
    """Accessor prefix for a bound object ("OrderRecord" -> "order_record")."""
    s = _CAMEL_BOUNDARY.sub("_", class_name.strip())
    return re.sub(r"[^0-9a-zA-Z_]+", "_", s).strip("_").lower() or "obj"


def infer_type(value: Any) -> str:
    # bool before int: bool is a subclass of int
    for py_type, name in _PY_TYPE_NAMES:
        if isinstance(value, py_type):
            return name
    return "any"


class ContextResolver:
    """
    Resolves potential contexts for states of a solution graph.

    The resolver owns no graph state; the registry and config are the only
    inputs besides the graph passed to `resolve()`.
    """

    def __init__(self, registry: Optional[StateKindRegistry] = None, config: Optional[ResolverConfig] = None):
        self.registry = registry if registry is not None else default_registry()
        self.config = config if config is not None else ResolverConfig()

    def resolve(self, graph: Graph, target_state_name: str) -> PotentialContext:
        """
        Compute the potential context at `target_state_name`.

        Unknown states resolve to an empty context (solution object only).
        """
        ctx = PotentialContext(solution_name=graph.solution_name, state_name=target_state_name)

        solution = self.solution_object(graph)
        if solution is not None:
            ctx.set_solution_object(solution)

        # Fresh per call: the graph may have been edited since the last resolve
        index = graph.index()
        for source_name, conn in index.dangling:
            logger.warning(
                "Dangling connector %s on %s[%d] -> %r",
                conn.id,
                source_name,
                conn.source_slot,
                conn.target_state_name,
            )

        target = index.get_state(target_state_name)
        if target is None:
            logger.debug("State %r not found in solution %r", target_state_name, graph.solution_name)
            return ctx

        # A data state is its own source for its bound instance
        if not self.registry.is_control_flow(target.state_class):
            own = self.extract_object_type(graph, target, distance=0, branch_path=())
            if own is not None:
                ctx.add_object_type(own)

        seen: Set[Tuple[str, str]] = {(target.state_name, "")}
        queue: Deque[Tuple[State, int, BranchPath, Optional[int]]] = deque([(target, 0, (), None)])
        expansions = 0

        while queue:
            if expansions >= self.config.max_expansions:
                ctx.truncated = True
                logger.debug(
                    "Context for %r truncated after %d expansions (%d pending)",
                    target_state_name,
                    expansions,
                    len(queue),
                )
                break
            state, depth, branch_path, arrival = queue.popleft()
            expansions += 1

            for slot in state.input_slots():
                found = index.find_connectors_targeting(state.state_name, slot.index)
                if found is None:
                    continue
                source = index.get_state(found.source_state_name)
                if source is None:
                    continue

                distance = depth + 1
                arrival_slot = slot.index if depth == 0 else arrival
                ctx.add_upstream_state(source.state_name, direct=depth == 0)
                ctx.distance_from_initial = max(ctx.distance_from_initial, distance)

                next_path = branch_path
                if graph.is_branching_state(source):
                    next_path = self._extend_branch_path(ctx, branch_path, found, distance)

                self._collect(ctx, graph, source, found, distance, next_path, arrival_slot)

                key = (source.state_name, branch_path_signature(next_path))
                if key in seen:
                    continue
                seen.add(key)
                queue.append((source, distance, next_path, arrival_slot))

        return ctx

    def _extend_branch_path(
        self,
        ctx: PotentialContext,
        branch_path: BranchPath,
        found: ConnectorSource,
        distance: int,
    ) -> BranchPath:
        # One branch point per origin: walking around a loop does not grow the path
        if any(bp.origin_state_name == found.source_state_name for bp in branch_path):
            return branch_path
        if len(branch_path) >= self.config.max_branch_path_length:
            ctx.truncated = True
            return branch_path
        point = BranchPoint(
            origin_state_name=found.source_state_name,
            branch_index=found.source_slot_index,
            step_at_branch=distance,
            branch_label=found.slot.label,
        )
        return (point,) + branch_path

    def _collect(
        self,
        ctx: PotentialContext,
        graph: Graph,
        source: State,
        found: ConnectorSource,
        distance: int,
        branch_path: BranchPath,
        arrival_slot: Optional[int],
    ) -> None:
        if not self.registry.is_control_flow(source.state_class):
            for v in self.slot_variables(source, found.slot, distance, branch_path, arrival_slot):
                ctx.add_variable(v)
            obj = self.extract_object_type(graph, source, distance=distance, branch_path=branch_path)
            if obj is not None:
                ctx.add_object_type(obj)

        for declared in self.registry.declared_variables(source):
            ctx.add_variable(
                PotentialVariable(
                    name=declared.name,
                    type=declared.type,
                    source_state_name=source.state_name,
                    source_slot_index=found.source_slot_index,
                    flow_distance=distance,
                    input_slot_index=arrival_slot,
                    label=declared.label or found.slot.label,
                    branch_path=branch_path,
                )
            )

    def slot_variables(
        self,
        source: State,
        slot: Slot,
        distance: int,
        branch_path: BranchPath,
        arrival_slot: Optional[int],
    ) -> List[PotentialVariable]:
        """Variables carried by an output slot's connectors."""
        vtype = slot.return_type or slot.parameter_type or "any"
        names = slot.passthrough_names()
        if not names and slot.return_type:
            names = [slot.parameter_name or slot.label or f"output_{slot.index}"]
        return [
            PotentialVariable(
                name=name,
                type=vtype,
                source_state_name=source.state_name,
                source_slot_index=slot.index,
                flow_distance=distance,
                input_slot_index=arrival_slot,
                label=slot.label,
                branch_path=branch_path,
            )
            for name in names
        ]

    def extract_object_type(
        self,
        graph: Graph,
        state: State,
        *,
        distance: int,
        branch_path: BranchPath,
    ) -> Optional[PotentialObjectType]:
        """Object type a state is bound to, or None."""
        class_name = state.bound_object_class
        if not class_name:
            return None
        # The solution object is always present on its own
        if graph.solution_class is not None and class_name == graph.solution_class.class_name:
            return None

        values = state.bound_object_field_values or {}
        prefix = instance_name(class_name)
        known = self.registry.class_fields(class_name)
        if known is not None:
            fields = tuple(
                PotentialObjectField(
                    path=f"{prefix}.{f.name}",
                    display_name=f.display_name or f.name,
                    type=f.type,
                    writable=f.editable,
                )
                for f in known
            )
        else:
            fields = tuple(
                PotentialObjectField(path=f"{prefix}.{k}", display_name=str(k), type=infer_type(v))
                for k, v in values.items()
            )

        raw_id = values.get("id")
        return PotentialObjectType(
            class_name=class_name,
            fields=fields,
            source_state_name=state.state_name,
            flow_distance=distance,
            branch_path=branch_path,
            instance_id=str(raw_id) if raw_id not in (None, "") else None,
        )

    def solution_object(self, graph: Graph) -> Optional[PotentialObjectType]:
        cls = graph.solution_class
        if cls is None:
            return None
        return PotentialObjectType(
            class_name=cls.class_name,
            fields=tuple(
                PotentialObjectField(
                    path=f"self.{f.name}",
                    display_name=f.display_name or f.name,
                    type=f.type,
                    writable=f.editable,
                )
                for f in cls.fields
            ),
            source_state_name=graph.solution_name,
            flow_distance=0,
            is_solution_object=True,
        )


def resolve(
    graph: Graph,
    target_state_name: str,
    registry: Optional[StateKindRegistry] = None,
    config: Optional[ResolverConfig] = None,
) -> PotentialContext:
    """Resolve the potential context of one state (see `ContextResolver`)."""
    return ContextResolver(registry, config).resolve(graph, target_state_name)
