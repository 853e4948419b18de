"""Tests for the solution graph model."""

import logging

import pytest

from flowcontext.core.analysis import resolve
from flowcontext.core.models import ClassField, Connector, Graph, Slot, State
from flowcontext.core.store import load_graph_file

from graph_builders import ADDITION_TEST, graph, inp, out, state


@pytest.fixture
def addition_test():
    return load_graph_file(ADDITION_TEST)


def test_parse_editor_document(addition_test):
    """Test parsing the editor's camelCase solution document."""
    assert addition_test.solution_name == "Addition Test"
    assert addition_test.function_name == "test_addition"
    assert [s.state_name for s in addition_test.states] == [
        "Start",
        "Compute Sum",
        "Get Expected",
        "Check Result",
        "Return True",
        "Return False",
    ]

    cls = addition_test.solution_class
    assert cls.class_name == "AdditionTester"
    assert cls.display_name == "Addition Tester"
    assert len(cls.fields) == 6
    assert cls.fields[5].type == "bool"

    start = addition_test.get_state("Start")
    assert start.state_class == "InitialState"
    assert start.input_slots() == []
    assert start.get_slot(0).passthrough_names() == ["num_a", "num_b"]
    assert start.get_slot(0).allow_one_to_many
    assert start.bound_object_field_values["inputParams"][0]["name"] == "num_a"

    check = addition_test.get_state("Check Result")
    assert check.get_slot(1).parameter_type == "int"
    assert [s.index for s in check.connected_output_slots()] == [2, 3]


def test_parse_snake_case_document():
    g = Graph.from_dict(
        {
            "solution_name": "Snake",
            "states": [
                {"state_name": "A", "state_class": "Process", "slots": [
                    {"index": 0, "is_input": False, "connectors": [
                        {"id": 1, "source_slot": 0, "sink_slot": 0, "target_state_name": "B"},
                    ]},
                ]},
                {"state_name": "B", "slots": [{"index": 0, "is_input": True}]},
            ],
            "solution_class": {"class_name": "Snake", "variables": [{"name": "n", "type": "int"}]},
        }
    )

    assert g.solution_name == "Snake"
    assert g.find_connectors_targeting("B", 0).source_state_name == "A"
    assert [f.name for f in g.solution_class.fields] == ["n"]


def test_parse_rejects_bad_documents():
    with pytest.raises(TypeError):
        Graph.from_dict(["not", "a", "mapping"])
    with pytest.raises(ValueError):
        Graph.from_dict({"stateInstances": []})


def test_parse_skips_malformed_entries():
    g = Graph.from_dict(
        {
            "solutionName": "Messy",
            "stateInstances": [
                {"stateClass": "Unnamed"},
                "not a state",
                {"stateName": "A", "slots": [
                    {"isInput": True},
                    {"index": "1", "isInput": False, "connectors": [
                        {"id": 3, "sourceSlot": 1},
                        {"id": 4, "sourceSlot": 1, "sinkSlot": 0, "targetStateName": "A"},
                    ]},
                ]},
            ],
        }
    )

    assert [s.state_name for s in g.states] == ["A"]
    slots = g.get_state("A").slots
    assert [s.index for s in slots] == [1]
    assert [c.id for c in slots[0].connectors] == [4]


def test_incoming_index(addition_test):
    found = addition_test.find_connectors_targeting("Check Result", 1)

    assert found.source_state_name == "Get Expected"
    assert found.source_slot_index == 1
    assert found.connector.sink_slot == 1
    assert found.slot.label == "comparison_value"

    assert addition_test.find_connectors_targeting("Start", 0) is None
    assert addition_test.find_connectors_targeting("Nowhere", 0) is None


def test_first_connector_in_state_order():
    g = graph(
        state("A", out(0, ("T", 0))),
        state("B", out(0, ("T", 0))),
        state("T", inp(0)),
    )

    assert g.find_connectors_targeting("T", 0).source_state_name == "A"
    assert [s.source_state_name for s in g.sources_targeting("T", 0)] == ["A", "B"]


def test_branching_state():
    g = graph(
        state("Fork", out(0, ("T", 0)), out(1, ("T", 1))),
        state("Fan", out(0, ("T", 0), ("T", 1)), out(1)),
        state("T", inp(0), inp(1)),
    )

    assert g.is_branching_state(g.get_state("Fork"))
    # Many connectors on one slot, or unconnected outputs, do not fork
    assert not g.is_branching_state(g.get_state("Fan"))


def test_dangling_connectors(caplog):
    g = graph(
        state("A", out(0, ("Ghost", 0)), out(1, ("B", 0))),
        state("B", inp(0)),
    )

    assert [(name, c.target_state_name) for name, c in g.dangling_connectors()] == [("A", "Ghost")]
    assert g.find_connectors_targeting("Ghost", 0) is None
    assert g.stats()["dangling_connectors"] == 1

    # Reported when a resolve walks the graph
    with caplog.at_level(logging.WARNING, logger="flowcontext.core.analysis"):
        resolve(g, "B")
    assert "Dangling connector" in caplog.text
    assert "Ghost" in caplog.text


def test_stats(addition_test):
    assert addition_test.stats() == {
        "states": 6,
        "input_slots": 6,
        "output_slots": 6,
        "connectors": 6,
        "branching_states": 2,
        "dangling_connectors": 0,
    }


def test_add_state_visible_to_queries():
    g = graph(state("A", out(0, ("B", 0))))
    assert len(g.dangling_connectors()) == 1

    assert g.add_state(State("B", slots=[inp(0)]))
    assert not g.add_state(State("B"))
    assert g.dangling_connectors() == []
    assert g.find_connectors_targeting("B", 0).source_state_name == "A"


def test_queries_see_in_place_edits():
    """Editing states, slots or connectors directly needs no refresh step."""
    g = graph(state("A", out(0)), state("T", inp(0)))
    assert g.find_connectors_targeting("T", 0) is None

    g.get_state("A").slots[0].connectors.append(Connector(99, 0, 0, "T"))
    assert g.find_connectors_targeting("T", 0).connector.id == 99

    g.states.append(state("Late", out(0, ("T", 0))))
    assert [s.source_state_name for s in g.sources_targeting("T", 0)] == ["A", "Late"]
    assert g.get_state("Late") is g.states[-1]

    g.states.remove(g.get_state("A"))
    assert g.find_connectors_targeting("T", 0).source_state_name == "Late"
    assert g.get_state("A") is None


def test_index_is_a_snapshot():
    g = graph(state("A", out(0, ("T", 0))), state("T", inp(0)))
    index = g.index()
    g.get_state("A").slots[0].connectors.clear()

    assert index.find_connectors_targeting("T", 0).source_state_name == "A"
    assert g.find_connectors_targeting("T", 0) is None


@pytest.mark.parametrize(
    "raw, expected",
    [(True, True), (False, False), ("true", True), ("False", False), (" TRUE ", True), ("yes", False), (1, False), (None, False)],
)
def test_slot_flags_parse_strictly(raw, expected):
    slot = Slot.from_dict({"index": 0, "isInput": raw, "allowOneToMany": raw, "allowManyToOne": raw})

    assert slot.is_input is expected
    assert slot.allow_one_to_many is expected
    assert slot.allow_many_to_one is expected


def test_field_editable_defaults_to_true():
    assert ClassField.from_dict({"name": "a"}).editable is True
    assert ClassField.from_dict({"name": "a", "isEditable": "false"}).editable is False
    assert ClassField.from_dict({"name": "a", "isEditable": "maybe"}).editable is True


def test_to_dict_reparses(addition_test):
    again = Graph.from_dict(addition_test.to_dict())

    assert again.to_dict() == addition_test.to_dict()
    assert again.stats() == addition_test.stats()
