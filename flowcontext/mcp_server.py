#!/usr/bin/env python3
"""
flowcontext MCP Server - potential context for no-code solution states

Lets an editor or agent ask what values could flow into a state of a
solution graph, so configuration popups can offer them as value sources.

Primary workflow:
1. Load a solution (file path or stored solution name)
2. List its states
3. Resolve the context of the state being configured
4. Pick value sources from the returned options
"""

import json
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mcp.server.fastmcp import FastMCP

from .core.analysis import ContextResolver
from .core.config import ResolverConfig
from .core.models import Graph
from .core.render import render_context, render_states
from .core.sources import available_inputs, source_object_fields
from .core.store import JsonFileGraphStore, load_graph_file

# Initialize MCP server
mcp = FastMCP("flowcontext_mcp")

# Loaded solution (one per session)
_graph: Optional[Graph] = None
_resolver: Optional[ContextResolver] = None

# Constants
CHARACTER_LIMIT = 25000


class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    MARKDOWN = "markdown"
    JSON = "json"
    BRIEF = "brief"


# ============================================================================
# Input Models
# ============================================================================

class LoadSolutionInput(BaseModel):
    """Input for loading a solution."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    source: str = Field(
        ...,
        description="Path to a JSON/YAML solution file, or the name of a stored solution",
        min_length=1
    )
    store_dir: Optional[str] = Field(
        default=None,
        description="Solution store directory used when 'source' is a name"
    )


class StateQueryInput(BaseModel):
    """Input for querying the context of one state."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    state_name: str = Field(
        ...,
        description="Name of the state being configured",
        min_length=1,
        max_length=500
    )
    by_branch: bool = Field(
        default=False,
        description="Group variables by branch path (markdown only)"
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for readable listing, 'json' for structured data, 'brief' for one-line summary"
    )


class ValueSourcesInput(BaseModel):
    """Input for listing value sources of a state."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    state_name: str = Field(..., description="Name of the state being configured", min_length=1, max_length=500)
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' or 'json'"
    )


# ============================================================================
# Helper Functions
# ============================================================================

def _load(source: str, store_dir: Optional[str] = None) -> str:
    """Load a solution, return error message or empty string."""
    global _graph, _resolver

    try:
        if Path(source).is_file():
            graph = load_graph_file(source)
        else:
            graph = JsonFileGraphStore(store_dir).load(source)
    except Exception as e:
        return f"Error loading solution: {str(e)}"

    if graph is None:
        return f"Error: Solution '{source}' not found."

    _graph = graph
    _resolver = ContextResolver(config=ResolverConfig.from_env())
    return ""


def _ensure_graph() -> str:
    if _graph is None or _resolver is None:
        return "Error: No solution loaded. Call flowcontext_load first."
    return ""


def _truncate_response(response: str, message: str = "") -> str:
    """Truncate response if too long."""
    if len(response) <= CHARACTER_LIMIT:
        return response

    truncated = response[:CHARACTER_LIMIT - 200]
    truncated += f"\n\n---\n**TRUNCATED**: Response exceeded {CHARACTER_LIMIT} characters. {message}"
    return truncated


def _unknown_state(state_name: str) -> str:
    names = [s.state_name for s in _graph.states if state_name.lower() in s.state_name.lower()]
    if names:
        return f"Error: State '{state_name}' not found. Did you mean: {', '.join(names[:5])}?"
    return f"Error: State '{state_name}' not found. Use flowcontext_states to list states."


# ============================================================================
# MCP Tools
# ============================================================================

@mcp.tool(
    name="flowcontext_load",
    annotations={
        "title": "Load Solution",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def flowcontext_load(params: LoadSolutionInput) -> str:
    """
    Load a solution graph.

    This MUST be called before the other flowcontext tools.

    Args:
        params: File path or stored solution name

    Returns:
        Summary of the loaded solution, or error message
    """
    error = _load(params.source, params.store_dir)
    if error:
        return error

    stats = _graph.stats()
    solution_class = _graph.solution_class.class_name if _graph.solution_class else "(none)"
    return f"""# Solution Loaded: {_graph.solution_name}

**States:** {stats['states']}
**Connectors:** {stats['connectors']}
**Branching States:** {stats['branching_states']}
**Solution Class:** {solution_class}

Use `flowcontext_resolve` to see what can flow into a state."""


@mcp.tool(
    name="flowcontext_states",
    annotations={
        "title": "List States",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def flowcontext_states() -> str:
    """
    List the states of the loaded solution with their kinds.

    Returns:
        One line per state: name, class, role
    """
    error = _ensure_graph()
    if error:
        return error

    return render_states(_graph, _resolver.registry)


@mcp.tool(
    name="flowcontext_resolve",
    annotations={
        "title": "Resolve State Context",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def flowcontext_resolve(params: StateQueryInput) -> str:
    """
    Show the variables and object types that could reach a state.

    Args:
        params: State name, grouping and response format

    Returns:
        Solution object, variables (with flow distance and branch path),
        object types, and upstream states
    """
    error = _ensure_graph()
    if error:
        return error

    if _graph.get_state(params.state_name) is None:
        return _unknown_state(params.state_name)

    ctx = _resolver.resolve(_graph, params.state_name)
    response = render_context(ctx, params.response_format.value, by_branch=params.by_branch)
    return _truncate_response(response, "Use 'brief' format or query a state closer to the entry.")


@mcp.tool(
    name="flowcontext_value_sources",
    annotations={
        "title": "List Value Sources",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def flowcontext_value_sources(params: ValueSourcesInput) -> str:
    """
    List the selectable value sources of a state.

    Args:
        params: State name and response format

    Returns:
        "from input" variables and "from object" fields
    """
    error = _ensure_graph()
    if error:
        return error

    if _graph.get_state(params.state_name) is None:
        return _unknown_state(params.state_name)

    ctx = _resolver.resolve(_graph, params.state_name)
    inputs = available_inputs(ctx)
    fields = source_object_fields(ctx)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps({
            "from_input": [i.to_dict() for i in inputs],
            "from_source_object": [f.to_dict() for f in fields],
        }, indent=2)

    lines = [f"# Value sources for `{params.state_name}`", "", f"## From Input ({len(inputs)})"]
    for i in inputs:
        lines.append(f"- `{i.key()}` {i.type} from {i.source_state_name} ({i.branch})")
    lines.extend(["", f"## From Object ({len(fields)})"])
    for f in fields:
        lines.append(f"- `{f.path}` {f.type}")
    return _truncate_response("\n".join(lines))


# Entry point for running the server
def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
