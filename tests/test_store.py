"""Tests for solution stores and file loading."""

import json
import logging
import os

import pytest

from flowcontext.core.lock import lock_holder, store_lock
from flowcontext.core.paths import get_store_dir, solution_filename
from flowcontext.core.store import InMemoryGraphStore, JsonFileGraphStore, load_graph_file

from graph_builders import ADDITION_TEST, ORDER_FLOW, graph, inp, out, state


@pytest.fixture
def order_flow():
    return load_graph_file(ORDER_FLOW)


def test_in_memory_store_copies(order_flow):
    store = InMemoryGraphStore()
    store.save("Orders", order_flow)

    # Editing the saved graph afterwards does not leak into the store
    order_flow.get_state("Ship").state_class = "Changed"
    loaded = store.load("Orders")
    assert loaded.get_state("Ship").state_class == "ShippingService"

    # Nor does editing a loaded copy
    loaded.states.clear()
    assert len(store.load("Orders").states) == 4

    assert store.load("Missing") is None
    assert store.list() == ["Orders"]


def test_in_memory_copy_keeps_indexes(order_flow):
    store = InMemoryGraphStore()
    store.save("Orders", order_flow)
    loaded = store.load("Orders")

    assert loaded.find_connectors_targeting("Ship", 0).source_state_name == "Validate"


def test_json_store_round_trip(tmp_path, order_flow):
    store = JsonFileGraphStore(tmp_path)
    store.save("Order Flow", order_flow)

    path = tmp_path / "order-flow.json"
    assert store.path_for("Order Flow") == path
    assert path.is_file()
    assert not (tmp_path / "order-flow.json.tmp").exists()
    assert json.loads(path.read_text())["solutionName"] == "Order Flow"

    loaded = store.load("Order Flow")
    assert loaded.solution_name == "Order Flow"
    assert loaded.stats() == order_flow.stats()
    assert loaded.solution_class == order_flow.solution_class

    assert store.list() == ["Order Flow"]


def test_json_store_missing(tmp_path):
    store = JsonFileGraphStore(tmp_path / "nothing-here")

    assert store.load("Anything") is None
    assert store.list() == []


def test_json_store_corrupt_file_moved_aside(tmp_path, caplog):
    store = JsonFileGraphStore(tmp_path)
    path = store.path_for("Broken")
    path.write_text("{not json")

    with caplog.at_level(logging.WARNING, logger="flowcontext.core.store"):
        assert store.load("Broken") is None

    assert not path.exists()
    assert (tmp_path / "broken.json.bak").is_file()
    assert "Unreadable solution file" in caplog.text


def test_json_store_list_skips_foreign_files(tmp_path):
    store = JsonFileGraphStore(tmp_path)
    store.save("Tiny", graph(state("A", out(0, ("B", 0))), state("B", inp(0))))
    (tmp_path / "notes.json").write_text("[1, 2, 3]")
    (tmp_path / "junk.json").write_text("{oops")

    assert store.list() == ["Tiny"]


def test_load_graph_file_formats(tmp_path):
    assert load_graph_file(ORDER_FLOW).solution_name == "OrderFlow"
    assert load_graph_file(ADDITION_TEST).solution_name == "Addition Test"

    # Unknown suffix: JSON first, then YAML
    doc = tmp_path / "solution.txt"
    doc.write_text("solutionName: Plain\nstateInstances:\n  - stateName: Only\n")
    g = load_graph_file(doc)
    assert g.solution_name == "Plain"
    assert [s.state_name for s in g.states] == ["Only"]


def test_load_graph_file_rejects_non_mapping(tmp_path):
    doc = tmp_path / "list.yaml"
    doc.write_text("- a\n- b\n")

    with pytest.raises(TypeError):
        load_graph_file(doc)


def test_store_dir_resolution(tmp_path, monkeypatch):
    monkeypatch.delenv("FLOWCTX_STORE_DIR", raising=False)
    monkeypatch.setenv("FLOWCTX_PROJECT_DIR", str(tmp_path))
    assert get_store_dir() == tmp_path / ".flowcontext" / "solutions"
    assert get_store_dir(tmp_path / "other") == tmp_path / "other" / ".flowcontext" / "solutions"

    monkeypatch.setenv("FLOWCTX_STORE_DIR", str(tmp_path / "custom"))
    assert get_store_dir() == tmp_path / "custom"
    assert JsonFileGraphStore().root == tmp_path / "custom"


def test_solution_filename():
    assert solution_filename("Order Flow") == "order-flow.json"
    assert solution_filename("  A -- B  ") == "a-b.json"
    assert solution_filename("???") == "solution.json"


def test_store_lock_records_holder(tmp_path):
    store_dir = tmp_path / "fresh"
    with store_lock(store_dir) as locked:
        assert locked
        assert lock_holder(store_dir) == os.getpid()
    assert (store_dir / ".lock").exists()
    assert lock_holder(store_dir) is None
    assert lock_holder(tmp_path / "never-created") is None
