"""Value-source options for configuration UIs.

A value can come from an input variable ("from_input"), from a field of an
object in scope ("from_source_object"), or be typed in directly
("direct_assignment"). These helpers turn a resolved context into the option
lists a selector offers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .context import PotentialContext, format_branch_path


class ValueSourceType(str, Enum):
    FROM_INPUT = "from_input"
    FROM_SOURCE_OBJECT = "from_source_object"
    DIRECT_ASSIGNMENT = "direct_assignment"


@dataclass(frozen=True)
class AvailableInput:
    slot_index: int
    variable_name: str
    type: str
    source_state_name: Optional[str] = None
    label: Optional[str] = None
    branch: str = "main flow"

    def key(self) -> str:
        """Selector key ("slotIndex:variableName")."""
        return f"{self.slot_index}:{self.variable_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot_index": self.slot_index,
            "variable_name": self.variable_name,
            "type": self.type,
            "source_state_name": self.source_state_name,
            "label": self.label,
            "branch": self.branch,
        }


@dataclass(frozen=True)
class SourceObjectField:
    path: str
    type: str
    display_name: Optional[str] = None
    class_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "type": self.type,
            "display_name": self.display_name,
            "class_name": self.class_name,
        }


@dataclass(frozen=True)
class ValueSourceConfig:
    source_type: ValueSourceType
    input_slot_index: Optional[int] = None
    input_variable_name: Optional[str] = None
    source_object_path: Optional[str] = None
    direct_value: Any = None
    direct_value_type: str = "str"


def available_inputs(context: PotentialContext) -> List[AvailableInput]:
    """One "from input" option per potential variable, nearest first."""
    out: List[AvailableInput] = []
    for v in context.get_variables():
        out.append(
            AvailableInput(
                slot_index=v.input_slot_index if v.input_slot_index is not None else -1,
                variable_name=v.name,
                type=v.type,
                source_state_name=v.source_state_name,
                label=v.label,
                branch=format_branch_path(v.branch_path),
            )
        )
    return out


def source_object_fields(context: PotentialContext) -> List[SourceObjectField]:
    """One "from object" option per field, solution object first."""
    return [
        SourceObjectField(path=f.path, type=f.type, display_name=f.display_name, class_name=o.class_name)
        for o in context.get_object_types()
        for f in o.fields
    ]


def describe_value_source(config: ValueSourceConfig) -> str:
    """Short display text for a configured value source."""
    if config.source_type == ValueSourceType.FROM_INPUT:
        if config.input_variable_name:
            return config.input_variable_name
        return f"input[{config.input_slot_index if config.input_slot_index is not None else 0}]"
    if config.source_type == ValueSourceType.FROM_SOURCE_OBJECT:
        path = config.source_object_path or ""
        if path.startswith("self."):
            return f"Object.{path[5:]}"
        return f"Object.{path}" if path else "Object.(?)"
    if config.source_type == ValueSourceType.DIRECT_ASSIGNMENT:
        if config.direct_value is not None and config.direct_value != "":
            return f"[{config.direct_value_type}] {config.direct_value}"
        return f"[{config.direct_value_type}] (empty)"
    return "(not selected)"


def is_complete(config: ValueSourceConfig) -> bool:
    if config.source_type == ValueSourceType.FROM_INPUT:
        return bool(config.input_variable_name)
    if config.source_type == ValueSourceType.FROM_SOURCE_OBJECT:
        return bool(config.source_object_path)
    if config.source_type == ValueSourceType.DIRECT_ASSIGNMENT:
        return config.direct_value is not None and config.direct_value != ""
    return False
