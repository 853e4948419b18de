"""Core domain types and algorithms."""

from .analysis import ContextResolver, resolve
from .config import ResolverConfig
from .context import (
    BranchPoint,
    PotentialContext,
    PotentialObjectField,
    PotentialObjectType,
    PotentialVariable,
    branch_path_signature,
    format_branch_path,
)
from .kinds import (
    DeclaredVariable,
    FieldOutputDeclaration,
    OutputDeclaration,
    ParameterListDeclaration,
    StateKind,
    StateKindRegistry,
    StateRole,
    default_registry,
)
from .models import BoundClass, ClassField, Connector, ConnectorSource, Graph, Slot, State
from .store import GraphStore, InMemoryGraphStore, JsonFileGraphStore, load_graph_file

__all__ = [
    # models
    "BoundClass",
    "ClassField",
    "Connector",
    "ConnectorSource",
    "Graph",
    "Slot",
    "State",
    # kinds
    "DeclaredVariable",
    "FieldOutputDeclaration",
    "OutputDeclaration",
    "ParameterListDeclaration",
    "StateKind",
    "StateKindRegistry",
    "StateRole",
    "default_registry",
    # context
    "BranchPoint",
    "PotentialContext",
    "PotentialObjectField",
    "PotentialObjectType",
    "PotentialVariable",
    "branch_path_signature",
    "format_branch_path",
    # analysis
    "ContextResolver",
    "ResolverConfig",
    "resolve",
    # store
    "GraphStore",
    "InMemoryGraphStore",
    "JsonFileGraphStore",
    "load_graph_file",
]
