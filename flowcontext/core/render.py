"""Text renderings of a potential context (markdown, json, brief) and of state listings."""

from __future__ import annotations

import json
from typing import List

from .context import PotentialContext, PotentialVariable
from .kinds import StateKindRegistry
from .models import Graph, State

FORMATS = ("markdown", "json", "brief")


def render_context(ctx: PotentialContext, format: str = "markdown", *, by_branch: bool = False) -> str:
    """
    Render a context as text.

    Args:
        format: "markdown" (default), "json", or "brief"
        by_branch: group markdown variables by branch path instead of one list
    """
    if format == "json":
        return json.dumps(ctx.to_dict(), indent=2, ensure_ascii=False)
    if format == "brief":
        return render_brief(ctx)
    return render_markdown(ctx, by_branch=by_branch)


def render_brief(ctx: PotentialContext) -> str:
    branches = ctx.get_branch_count()
    parts = [
        f"{ctx.state_name}: {len(ctx.variables)} variables",
        f"{len(ctx.get_object_types())} object types",
        f"{len(ctx.all_upstream_states)} upstream states",
    ]
    if branches:
        parts.append(f"{branches} branch paths")
    line = ", ".join(parts)
    return line + " (truncated)" if ctx.truncated else line


def _variable_line(v: PotentialVariable) -> str:
    slot = f"input {v.input_slot_index}" if v.input_slot_index is not None else "input ?"
    return f"- `{v.name}`: {v.type} (from {v.source_state_name}, {slot}, distance {v.flow_distance})"


def render_markdown(ctx: PotentialContext, *, by_branch: bool = False) -> str:
    lines: List[str] = [f"# Context for `{ctx.state_name}` ({ctx.solution_name})", ""]

    if ctx.solution_object is not None:
        so = ctx.solution_object
        lines.append(f"## Solution Object: {so.class_name}")
        for f in so.fields:
            lines.append(f"- `{f.path}`: {f.type}")
        lines.append("")

    variables = ctx.get_variables()
    lines.append(f"## Variables ({len(variables)})")
    if not variables:
        lines.append("_No connected inputs._")
    elif by_branch:
        for branch, items in ctx.get_variables_by_branch().items():
            lines.append(f"### {branch}")
            lines.extend(_variable_line(v) for v in items)
    else:
        for v in variables:
            line = _variable_line(v)
            if v.branch_path:
                line += f" via {ctx.format_branch_path(v.branch_path)}"
            lines.append(line)
    lines.append("")

    others = [o for o in ctx.get_object_types() if not o.is_solution_object]
    if others:
        lines.append(f"## Object Types ({len(others)})")
        for o in others:
            lines.append(f"- **{o.class_name}** from {o.source_state_name} (distance {o.flow_distance})")
            for f in o.fields:
                lines.append(f"    - `{f.path}`: {f.type}")
        lines.append("")

    lines.append("## Flow")
    lines.append(f"- Distance from initial: {ctx.distance_from_initial}")
    lines.append(f"- Direct upstream: {', '.join(ctx.direct_upstream_states) or '(none)'}")
    lines.append(f"- All upstream: {', '.join(ctx.all_upstream_states) or '(none)'}")
    if ctx.has_branched_variables():
        lines.append(f"- Branch paths: {ctx.get_branch_count()}")
    if ctx.truncated:
        lines.append("- **Truncated**: exploration limit reached, context may be incomplete")
    return "\n".join(lines)


def state_tags(graph: Graph, registry: StateKindRegistry, state: State) -> List[str]:
    """Role, capability, entry/exit and fork tags of one state."""
    kind = registry.kind_for(state.state_class)
    tags = [kind.role.value]
    if kind.declares_output:
        tags.append("declares output")
    if kind.special:
        tags.append(kind.special)
    if graph.is_branching_state(state):
        tags.append("branching")
    return tags


def render_states(graph: Graph, registry: StateKindRegistry) -> str:
    lines = [f"# States of {graph.solution_name} ({len(graph.states)})", ""]
    for state in graph.states:
        tags = state_tags(graph, registry, state)
        lines.append(f"- `{state.state_name}` [{state.state_class or '?'}] {', '.join(tags)}")
    return "\n".join(lines)
