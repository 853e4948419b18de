"""State kinds and class metadata.

Classification of states is data, not code: the resolver asks a
`StateKindRegistry` whether a state class routes control flow, and which
variables a state declares. Registries are built explicitly and passed in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import BoundClass, ClassField, State


class StateRole(str, Enum):
    """What a state does to the data flowing through it."""

    CONTROL_FLOW = "control_flow"  # routes execution, introduces no data
    DATA = "data"  # produces data on its output slots


@dataclass(frozen=True)
class DeclaredVariable:
    name: str
    type: str = "any"
    label: Optional[str] = None


class OutputDeclaration(ABC):
    """Capability: the state explicitly declares variables it produces."""

    @abstractmethod
    def declared_variables(self, state: State) -> List[DeclaredVariable]: ...


@dataclass(frozen=True)
class FieldOutputDeclaration(OutputDeclaration):
    """Variable named by one configured field, typed by another.

    Assignment states store e.g. `{"variableName": "total", "dataType": "int"}`.
    """

    name_field: str = "variableName"
    type_field: str = "dataType"
    default_type: str = "any"

    def declared_variables(self, state: State) -> List[DeclaredVariable]:
        values = state.bound_object_field_values or {}
        name = values.get(self.name_field)
        if not isinstance(name, str) or not name.strip():
            return []
        vtype = values.get(self.type_field)
        if not isinstance(vtype, str) or not vtype.strip():
            vtype = self.default_type
        return [DeclaredVariable(name=name.strip(), type=vtype.strip())]


@dataclass(frozen=True)
class ParameterListDeclaration(OutputDeclaration):
    """Variables listed under one field as `[{"name": ..., "type": ...}, ...]`.

    Entry states declare the solution's input parameters this way.
    """

    list_field: str = "inputParams"
    default_type: str = "any"

    def declared_variables(self, state: State) -> List[DeclaredVariable]:
        raw = (state.bound_object_field_values or {}).get(self.list_field)
        if not isinstance(raw, list):
            return []
        out: List[DeclaredVariable] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            if not isinstance(name, str) or not name.strip():
                continue
            vtype = item.get("type")
            out.append(
                DeclaredVariable(
                    name=name.strip(),
                    type=vtype.strip() if isinstance(vtype, str) and vtype.strip() else self.default_type,
                    label=item.get("description") if isinstance(item.get("description"), str) else None,
                )
            )
        return out


@dataclass(frozen=True)
class StateKind:
    class_name: str
    role: StateRole = StateRole.DATA
    display_name: str = ""
    category: str = "Custom"
    output: Optional[OutputDeclaration] = None
    special: Optional[str] = None  # initial|end
    fields: Tuple[ClassField, ...] = ()

    @property
    def is_control_flow(self) -> bool:
        return self.role == StateRole.CONTROL_FLOW

    @property
    def declares_output(self) -> bool:
        return self.output is not None


class StateKindRegistry:
    """Registry of state kinds and bound-object class metadata."""

    def __init__(self, kinds: Iterable[StateKind] = (), classes: Iterable[BoundClass] = ()):
        self._kinds: Dict[str, StateKind] = {}
        self._classes: Dict[str, BoundClass] = {}
        for k in kinds:
            self.register(k)
        for c in classes:
            self.register_class(c)

    def register(self, kind: StateKind) -> None:
        self._kinds[kind.class_name] = kind

    def unregister(self, class_name: str) -> bool:
        return self._kinds.pop(class_name, None) is not None

    def get(self, class_name: str) -> Optional[StateKind]:
        return self._kinds.get(class_name)

    def kind_for(self, state_class: str) -> StateKind:
        """Registered kind, or a plain data-producing kind for unknown classes."""
        kind = self._kinds.get(state_class)
        if kind is None:
            return StateKind(class_name=state_class, role=StateRole.DATA)
        return kind

    def is_control_flow(self, state_class: str) -> bool:
        return self.kind_for(state_class).is_control_flow

    def declared_variables(self, state: State) -> List[DeclaredVariable]:
        kind = self.kind_for(state.state_class)
        if kind.output is None:
            return []
        return kind.output.declared_variables(state)

    def register_class(self, cls: BoundClass) -> None:
        self._classes[cls.class_name] = cls

    def get_class(self, class_name: str) -> Optional[BoundClass]:
        return self._classes.get(class_name)

    def class_fields(self, class_name: str) -> Optional[Tuple[ClassField, ...]]:
        """Known fields of `class_name`: registered class first, then a kind's fields."""
        cls = self._classes.get(class_name)
        if cls is not None:
            return cls.fields
        kind = self._kinds.get(class_name)
        if kind is not None and kind.fields:
            return kind.fields
        return None

    def by_category(self) -> Dict[str, List[StateKind]]:
        out: Dict[str, List[StateKind]] = {}
        for k in self._kinds.values():
            out.setdefault(k.category, []).append(k)
        return out

    def __contains__(self, class_name: object) -> bool:
        return class_name in self._kinds

    def __len__(self) -> int:
        return len(self._kinds)


def _display_name_field(default: str) -> ClassField:
    return ClassField(name="displayName", type="str", display_name="Display Name", default=default)


def _fields(*items: Tuple[str, str, Any]) -> Tuple[ClassField, ...]:
    return tuple(
        ClassField(name=name, type=ftype, display_name=name[:1].upper() + name[1:], default=default)
        for name, ftype, default in items
    )


def default_registry() -> StateKindRegistry:
    """Build a registry holding the editor's built-in state kinds."""
    cf = StateRole.CONTROL_FLOW
    data = StateRole.DATA
    kinds = [
        StateKind(
            "InitialState",
            cf,
            "Initial State",
            "Control Flow",
            output=ParameterListDeclaration("inputParams"),
            special="initial",
            fields=(_display_name_field("Start"),) + _fields(("description", "str", "Solution entry point")),
        ),
        StateKind(
            "EndState",
            cf,
            "End State",
            "Control Flow",
            special="end",
            fields=(_display_name_field("End"),),
        ),
        StateKind(
            "ConditionalChain",
            cf,
            "Conditional Chain",
            "Conditionals",
            fields=(_display_name_field("Condition Chain"),)
            + _fields(("defaultLogicalOperator", "str", "AND"), ("links", "list", None)),
        ),
        StateKind(
            "VariableAssignment",
            cf,
            "Variable Assignment",
            "Control Flow",
            output=FieldOutputDeclaration("variableName", "dataType"),
            fields=(_display_name_field("Variable Assignment"),)
            + _fields(("variableName", "str", ""), ("dataType", "str", "any")),
        ),
        StateKind("ReturnStatement", cf, "Return", "Control Flow", fields=(_display_name_field("Return"),)),
        StateKind("BreakStatement", cf, "Break", "Control Flow", fields=(_display_name_field("Break"),)),
        StateKind("ContinueStatement", cf, "Continue", "Control Flow", fields=(_display_name_field("Continue"),)),
        StateKind(
            "ForLoop",
            data,
            "For Loop",
            "Loops",
            fields=(_display_name_field("For Loop"),)
            + _fields(
                ("iteratorVariable", "str", "i"),
                ("startValue", "int", 0),
                ("endValue", "int", 10),
                ("stepValue", "int", 1),
            ),
        ),
        StateKind(
            "WhileLoop",
            data,
            "While Loop",
            "Loops",
            fields=(_display_name_field("While Loop"),) + _fields(("maxIterations", "int", 10000)),
        ),
        StateKind(
            "ForEachLoop",
            data,
            "For Each",
            "Loops",
            fields=(_display_name_field("For Each"),)
            + _fields(
                ("itemVariable", "str", "item"),
                ("indexVariable", "str", "index"),
                ("collectionVariable", "str", "collection"),
            ),
        ),
        StateKind(
            "FilterList",
            data,
            "Filter List",
            "Data",
            fields=(_display_name_field("Filter"),) + _fields(("filterType", "str", "byType"), ("objectType", "str", "")),
        ),
        StateKind(
            "MapList",
            data,
            "Map List",
            "Data",
            fields=(_display_name_field("Map"),) + _fields(("outputField", "str", "")),
        ),
        StateKind(
            "ReduceList",
            data,
            "Reduce List",
            "Data",
            fields=(_display_name_field("Reduce"),) + _fields(("operation", "str", "sum")),
        ),
        StateKind(
            "LogOutput",
            data,
            "Log Output",
            "Debug",
            fields=(_display_name_field("Log"),) + _fields(("logLevel", "str", "info"), ("messageTemplate", "str", "")),
        ),
    ]
    return StateKindRegistry(kinds)
