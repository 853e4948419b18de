"""Graph model for no-code solutions.

A solution is a set of states. Each state owns ordered slots; output slots own
the connectors that point at an input slot of another state. A `GraphIndex` of
incoming connectors, built from the live lists, lets the resolver walk backward
in O(1) per slot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _opt_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return default


@dataclass(frozen=True)
class Connector:
    """Directed edge from an output slot to an input slot of `target_state_name`."""

    id: int
    source_slot: int
    sink_slot: int
    target_state_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sourceSlot": self.source_slot,
            "sinkSlot": self.sink_slot,
            "targetStateName": self.target_state_name,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["Connector"]:
        source = _opt_int(d.get("sourceSlot", d.get("source_slot")))
        sink = _opt_int(d.get("sinkSlot", d.get("sink_slot")))
        if source is None or sink is None:
            return None
        return cls(
            id=_opt_int(d.get("id")) or 0,
            source_slot=source,
            sink_slot=sink,
            target_state_name=_opt_str(d.get("targetStateName", d.get("target_state_name"))),
        )


@dataclass
class Slot:
    index: int
    is_input: bool = False
    connectors: List[Connector] = field(default_factory=list)
    label: Optional[str] = None
    parameter_name: Optional[str] = None
    parameter_type: Optional[str] = None
    return_type: Optional[str] = None
    passthrough_variable_name: Optional[str] = None
    allow_one_to_many: bool = False
    allow_many_to_one: bool = False

    @property
    def is_output(self) -> bool:
        return not self.is_input

    def passthrough_names(self) -> List[str]:
        """Names forwarded together on this slot ("a,b" -> ["a", "b"])."""
        raw = self.passthrough_variable_name or ""
        return [n.strip() for n in raw.split(",") if n.strip()]

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "index": self.index,
            "isInput": self.is_input,
            "connectors": [c.to_dict() for c in self.connectors],
            "allowOneToMany": self.allow_one_to_many,
            "allowManyToOne": self.allow_many_to_one,
        }
        for key, value in (
            ("label", self.label),
            ("parameterName", self.parameter_name),
            ("parameterType", self.parameter_type),
            ("returnType", self.return_type),
            ("passthroughVariableName", self.passthrough_variable_name),
        ):
            if value is not None:
                d[key] = value
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["Slot"]:
        index = _opt_int(d.get("index"))
        if index is None:
            return None
        connectors: List[Connector] = []
        for raw in d.get("connectors") or []:
            if not isinstance(raw, dict):
                continue
            conn = Connector.from_dict(raw)
            if conn is not None:
                connectors.append(conn)
        return cls(
            index=index,
            is_input=_opt_bool(d.get("isInput", d.get("is_input"))),
            connectors=connectors,
            label=_opt_str(d.get("label")),
            parameter_name=_opt_str(d.get("parameterName", d.get("parameter_name"))),
            parameter_type=_opt_str(d.get("parameterType", d.get("parameter_type"))),
            return_type=_opt_str(d.get("returnType", d.get("return_type"))),
            passthrough_variable_name=_opt_str(
                d.get("passthroughVariableName", d.get("passthrough_variable_name"))
            ),
            allow_one_to_many=_opt_bool(d.get("allowOneToMany")),
            allow_many_to_one=_opt_bool(d.get("allowManyToOne")),
        )


@dataclass
class State:
    state_name: str
    state_class: str = ""
    slots: List[Slot] = field(default_factory=list)
    bound_object_class: Optional[str] = None
    bound_object_field_values: Dict[str, Any] = field(default_factory=dict)
    index: Optional[int] = None

    def input_slots(self) -> List[Slot]:
        return [s for s in self.slots if s.is_input]

    def output_slots(self) -> List[Slot]:
        return [s for s in self.slots if s.is_output]

    def connected_output_slots(self) -> List[Slot]:
        return [s for s in self.slots if s.is_output and s.connectors]

    def get_slot(self, index: int) -> Optional[Slot]:
        for s in self.slots:
            if s.index == index:
                return s
        return None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "stateName": self.state_name,
            "stateClass": self.state_class,
            "slots": [s.to_dict() for s in self.slots],
        }
        if self.index is not None:
            d["index"] = self.index
        if self.bound_object_class:
            d["boundObjectClass"] = self.bound_object_class
            d["boundObjectFieldValues"] = dict(self.bound_object_field_values)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["State"]:
        name = _opt_str(d.get("stateName", d.get("state_name")))
        if not name:
            return None
        slots: List[Slot] = []
        for raw in d.get("slots") or []:
            if not isinstance(raw, dict):
                continue
            slot = Slot.from_dict(raw)
            if slot is not None:
                slots.append(slot)
        values = d.get("boundObjectFieldValues", d.get("bound_object_field_values"))
        return cls(
            state_name=name,
            state_class=str(d.get("stateClass", d.get("state_class")) or ""),
            slots=slots,
            bound_object_class=_opt_str(d.get("boundObjectClass", d.get("bound_object_class"))),
            bound_object_field_values=dict(values) if isinstance(values, dict) else {},
            index=_opt_int(d.get("index")),
        )


@dataclass(frozen=True)
class ClassField:
    name: str
    type: str = "any"
    display_name: Optional[str] = None
    editable: bool = True
    default: Any = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name or self.name,
            "type": self.type,
            "isEditable": self.editable,
            "defaultValue": self.default,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["ClassField"]:
        name = _opt_str(d.get("name"))
        if not name:
            return None
        return cls(
            name=name,
            type=_opt_str(d.get("type")) or "any",
            display_name=_opt_str(d.get("displayName", d.get("display_name"))),
            editable=_opt_bool(d.get("isEditable", d.get("editable")), default=True),
            default=d.get("defaultValue", d.get("default")),
            description=_opt_str(d.get("description")),
        )


@dataclass(frozen=True)
class BoundClass:
    """Class metadata: the solution class, or a class states are bound to."""

    class_name: str
    fields: Tuple[ClassField, ...] = ()
    display_name: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "className": self.class_name,
            "displayName": self.display_name or self.class_name,
            "description": self.description or "",
            "fields": [f.to_dict() for f in self.fields],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["BoundClass"]:
        name = _opt_str(d.get("className", d.get("class_name")))
        if not name:
            return None
        fields: List[ClassField] = []
        for raw in d.get("fields") or d.get("variables") or []:
            if not isinstance(raw, dict):
                continue
            f = ClassField.from_dict(raw)
            if f is not None:
                fields.append(f)
        return cls(
            class_name=name,
            fields=tuple(fields),
            display_name=_opt_str(d.get("displayName", d.get("display_name"))),
            description=_opt_str(d.get("description")),
        )


class ConnectorSource(NamedTuple):
    """Where the value arriving at an input slot comes from."""

    source_state_name: str
    source_slot_index: int
    slot: Slot
    connector: Connector


@dataclass
class GraphIndex:
    """
    Lookup tables built from a graph's current state and slot lists.

    Built on demand, never stored on the graph: edits to `Graph.states`, slots
    or connectors are visible to the next index built.
    """

    states: Dict[str, State]
    incoming: Dict[Tuple[str, int], List[ConnectorSource]]
    dangling: List[Tuple[str, Connector]]

    @classmethod
    def build(cls, states: List[State]) -> "GraphIndex":
        state_map: Dict[str, State] = {}
        for s in states:
            state_map.setdefault(s.state_name, s)
        incoming: Dict[Tuple[str, int], List[ConnectorSource]] = {}
        dangling: List[Tuple[str, Connector]] = []

        # State/slot order, so the first entry per key is the first found
        for s in states:
            for slot in s.slots:
                if slot.is_input:
                    continue
                for conn in slot.connectors:
                    target = conn.target_state_name
                    if not target or target not in state_map:
                        dangling.append((s.state_name, conn))
                        continue
                    incoming.setdefault((target, conn.sink_slot), []).append(
                        ConnectorSource(s.state_name, slot.index, slot, conn)
                    )
        return cls(states=state_map, incoming=incoming, dangling=dangling)

    def get_state(self, state_name: str) -> Optional[State]:
        return self.states.get(state_name)

    def find_connectors_targeting(self, state_name: str, input_slot_index: int) -> Optional[ConnectorSource]:
        found = self.incoming.get((state_name, input_slot_index))
        return found[0] if found else None

    def sources_targeting(self, state_name: str, input_slot_index: int) -> List[ConnectorSource]:
        return list(self.incoming.get((state_name, input_slot_index), []))


@dataclass
class Graph:
    """
    Snapshot of a no-code solution.

    Queries read the live `states` list; bulk readers take one `index()`
    and query that instead.
    """

    solution_name: str
    states: List[State] = field(default_factory=list)
    solution_class: Optional[BoundClass] = None
    function_name: Optional[str] = None

    def index(self) -> GraphIndex:
        return GraphIndex.build(self.states)

    def get_state(self, state_name: str) -> Optional[State]:
        for s in self.states:
            if s.state_name == state_name:
                return s
        return None

    def add_state(self, state: State) -> bool:
        """Add state if its name is free. Returns True if added."""
        if self.get_state(state.state_name) is not None:
            return False
        self.states.append(state)
        return True

    def find_connectors_targeting(self, state_name: str, input_slot_index: int) -> Optional[ConnectorSource]:
        """First connector feeding `state_name`'s input slot, in state/slot order."""
        return self.index().find_connectors_targeting(state_name, input_slot_index)

    def sources_targeting(self, state_name: str, input_slot_index: int) -> List[ConnectorSource]:
        return self.index().sources_targeting(state_name, input_slot_index)

    def is_branching_state(self, state: State) -> bool:
        """A state forks the flow when more than one output slot is connected."""
        return len(state.connected_output_slots()) > 1

    def dangling_connectors(self) -> List[Tuple[str, Connector]]:
        """Connectors whose target state does not exist, as `(source_state_name, connector)`."""
        return self.index().dangling

    def stats(self) -> Dict[str, int]:
        """Return graph statistics."""
        return {
            "states": len(self.states),
            "input_slots": sum(len(s.input_slots()) for s in self.states),
            "output_slots": sum(len(s.output_slots()) for s in self.states),
            "connectors": sum(len(slot.connectors) for s in self.states for slot in s.output_slots()),
            "branching_states": sum(1 for s in self.states if self.is_branching_state(s)),
            "dangling_connectors": len(self.index().dangling),
        }

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "solutionName": self.solution_name,
            "stateInstances": [s.to_dict() for s in self.states],
        }
        if self.solution_class is not None:
            d["boundClass"] = self.solution_class.to_dict()
        if self.function_name:
            d["functionName"] = self.function_name
        return d

    @classmethod
    def from_dict(cls, d: Any) -> "Graph":
        """Parse an editor solution document.

        Accepts the editor's camelCase shape as well as snake_case keys.
        """
        if not isinstance(d, dict):
            raise TypeError("Solution document must be a mapping")
        name = _opt_str(d.get("solutionName", d.get("solution_name")))
        if not name:
            raise ValueError("Solution document missing required 'solutionName'")

        raw_states = d.get("stateInstances", d.get("states"))
        states: List[State] = []
        if isinstance(raw_states, list):
            for raw in raw_states:
                if not isinstance(raw, dict):
                    continue
                st = State.from_dict(raw)
                if st is None:
                    logger.debug("Skipping unnamed state in %s", name)
                    continue
                states.append(st)

        raw_cls = d.get("boundClass", d.get("solutionClass", d.get("solution_class")))
        solution_class = BoundClass.from_dict(raw_cls) if isinstance(raw_cls, dict) else None

        return cls(
            solution_name=name,
            states=states,
            solution_class=solution_class,
            function_name=_opt_str(d.get("functionName", d.get("function_name"))),
        )
