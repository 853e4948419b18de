"""Tests for the potential context container."""

import json

from flowcontext.core.context import (
    MAIN_FLOW,
    BranchPoint,
    PotentialContext,
    PotentialObjectField,
    PotentialObjectType,
    PotentialVariable,
    branch_path_signature,
    format_branch_path,
)

LEFT = (BranchPoint("Split", 0, 1, "Left"),)
RIGHT = (BranchPoint("Split", 1, 1),)


def var(name, distance, source="S", slot=None, branch_path=()):
    return PotentialVariable(
        name=name,
        type="int",
        source_state_name=source,
        source_slot_index=0,
        flow_distance=distance,
        input_slot_index=slot,
        branch_path=branch_path,
    )


def obj(class_name, distance, source="S", solution=False):
    return PotentialObjectType(
        class_name=class_name,
        fields=(PotentialObjectField(f"{class_name.lower()}.id", "Id", "int"),),
        source_state_name=source,
        flow_distance=distance,
        is_solution_object=solution,
    )


def test_nearer_variable_replaces_farther():
    ctx = PotentialContext("Sol", "T")
    ctx.add_variable(var("x", 3, source="Far"))
    ctx.add_variable(var("x", 1, source="Near"))
    ctx.add_variable(var("x", 2, source="Middle"))

    assert len(ctx.variables) == 1
    assert ctx.get_variable("x").source_state_name == "Near"


def test_equal_distance_keeps_first():
    ctx = PotentialContext("Sol", "T")
    ctx.add_variable(var("x", 2, source="First"))
    ctx.add_variable(var("x", 2, source="Second"))

    assert ctx.get_variable("x").source_state_name == "First"


def test_branch_qualified_keys():
    ctx = PotentialContext("Sol", "T")
    ctx.add_variable(var("x", 1))
    ctx.add_variable(var("x", 2, branch_path=LEFT))
    ctx.add_variable(var("x", 2, branch_path=RIGHT))

    assert sorted(ctx.variables) == ["x", "x@Split:0", "x@Split:1"]
    assert ctx.get_variable("x", LEFT).branch_path == LEFT
    assert len(ctx.find_variables("x")) == 3
    assert ctx.get_branch_count() == 2


def test_main_flow_variables_do_not_count_as_branched():
    ctx = PotentialContext("Sol", "T")
    ctx.add_variable(var("x", 1))

    assert not ctx.has_branched_variables()
    assert ctx.has_variable("x")
    assert not ctx.has_variable("y")


def test_get_variables_sorted_by_distance_then_name():
    ctx = PotentialContext("Sol", "T")
    for name, distance in (("zeta", 1), ("beta", 2), ("alpha", 2), ("omega", 0)):
        ctx.add_variable(var(name, distance))

    assert [v.name for v in ctx.get_variables()] == ["omega", "zeta", "alpha", "beta"]


def test_variables_by_branch():
    ctx = PotentialContext("Sol", "T")
    ctx.add_variable(var("a", 1))
    ctx.add_variable(var("b", 2, branch_path=LEFT))
    ctx.add_variable(var("c", 2, branch_path=RIGHT))

    grouped = ctx.get_variables_by_branch()
    assert [v.name for v in grouped[MAIN_FLOW]] == ["a"]
    assert [v.name for v in grouped["Split[Left]"]] == ["b"]
    assert [v.name for v in grouped["Split[branch 1]"]] == ["c"]


def test_variables_by_slot():
    ctx = PotentialContext("Sol", "T")
    ctx.add_variable(var("a", 1, slot=1))
    ctx.add_variable(var("b", 1, slot=0))
    ctx.add_variable(var("c", 1))

    grouped = ctx.get_variables_by_slot()
    assert list(grouped) == [-1, 0, 1]
    assert [v.name for v in grouped[-1]] == ["c"]


def test_object_types_solution_first():
    ctx = PotentialContext("Sol", "T")
    ctx.add_object_type(obj("Order", 2))
    ctx.add_object_type(obj("Customer", 1))
    ctx.set_solution_object(obj("Calc", 0))

    assert [o.class_name for o in ctx.get_object_types()] == ["Calc", "Customer", "Order"]
    assert ctx.get_object_types()[0].is_solution_object
    assert ctx.has_object_type("Calc")
    assert not ctx.has_object_type("Invoice")


def test_solution_object_added_as_object_type_goes_to_slot():
    ctx = PotentialContext("Sol", "T")
    ctx.add_object_type(obj("Calc", 0, solution=True))

    assert ctx.object_types == {}
    assert ctx.solution_object.class_name == "Calc"


def test_nearer_object_type_replaces_farther():
    ctx = PotentialContext("Sol", "T")
    ctx.add_object_type(obj("Order", 3, source="Far"))
    ctx.add_object_type(obj("Order", 1, source="Near"))

    assert ctx.get_object_type("Order").source_state_name == "Near"
    assert [f.path for f in ctx.get_all_object_fields()] == ["order.id"]


def test_upstream_tracking():
    ctx = PotentialContext("Sol", "T")
    ctx.add_upstream_state("B", direct=True)
    ctx.add_upstream_state("A", direct=False)
    ctx.add_upstream_state("B", direct=True)

    assert ctx.direct_upstream_states == ["B"]
    assert ctx.all_upstream_states == ["B", "A"]


def test_merge():
    left = PotentialContext("Sol", "T")
    left.set_solution_object(obj("Calc", 0))
    left.add_variable(var("x", 3, source="Far"))
    left.add_upstream_state("A", direct=True)
    left.distance_from_initial = 3

    right = PotentialContext("Sol", "T")
    right.set_solution_object(obj("Other", 0))
    right.add_variable(var("x", 1, source="Near"))
    right.add_variable(var("y", 2, branch_path=LEFT))
    right.add_object_type(obj("Order", 1))
    right.add_upstream_state("B", direct=True)
    right.add_upstream_state("C", direct=False)
    right.distance_from_initial = 2
    right.truncated = True

    left.merge(right)

    assert left.get_variable("x").source_state_name == "Near"
    assert left.get_variable("y", LEFT) is not None
    assert left.has_object_type("Order")
    assert left.solution_object.class_name == "Calc"
    assert left.direct_upstream_states == ["A", "B"]
    assert left.all_upstream_states == ["A", "B", "C"]
    assert left.branch_paths == [LEFT]
    assert left.distance_from_initial == 3
    assert left.truncated


def test_merge_adopts_missing_solution_object():
    left = PotentialContext("Sol", "T")
    right = PotentialContext("Sol", "T")
    right.set_solution_object(obj("Calc", 0))

    left.merge(right)
    assert left.solution_object.class_name == "Calc"


def test_clone_is_independent():
    ctx = PotentialContext("Sol", "T")
    ctx.add_variable(var("x", 1))
    ctx.add_upstream_state("A", direct=True)

    copy = ctx.clone()
    copy.add_variable(var("y", 1, branch_path=LEFT))
    copy.add_object_type(obj("Order", 1))
    copy.add_upstream_state("B", direct=True)
    copy.truncated = True

    assert sorted(ctx.variables) == ["x"]
    assert ctx.object_types == {}
    assert ctx.direct_upstream_states == ["A"]
    assert ctx.branch_paths == []
    assert not ctx.truncated
    assert copy.get_variable("x") == ctx.get_variable("x")


def test_format_branch_path():
    assert format_branch_path(()) == "main flow"
    assert format_branch_path(LEFT) == "Split[Left]"
    nested = (BranchPoint("Outer", 2, 3, "Yes"),) + RIGHT
    assert format_branch_path(nested) == "Outer[Yes] → Split[branch 1]"
    assert PotentialContext.format_branch_path(LEFT) == "Split[Left]"


def test_branch_path_signature():
    assert branch_path_signature(()) == ""
    assert branch_path_signature((BranchPoint("A", 1, 2),) + LEFT) == "A:1>Split:0"


def test_to_dict_is_json_serializable():
    ctx = PotentialContext("Sol", "T")
    ctx.set_solution_object(obj("Calc", 0))
    ctx.add_variable(var("x", 1, branch_path=LEFT))

    data = json.loads(json.dumps(ctx.to_dict()))
    assert data["state_name"] == "T"
    assert data["variables"][0]["branch_path"][0]["branch_label"] == "Left"
    assert data["object_types"][0]["is_solution_object"] is True
    assert data["truncated"] is False
