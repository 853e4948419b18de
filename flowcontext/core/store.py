"""Solution stores.

The resolver only reads graph snapshots; saving and loading them belongs here.
Stores hand out copies, so editing a loaded graph never changes what is stored.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .lock import lock_holder, store_lock
from .models import Graph
from .paths import get_store_dir, solution_filename

logger = logging.getLogger(__name__)


class GraphStore(ABC):
    @abstractmethod
    def load(self, solution_name: str) -> Optional[Graph]: ...

    @abstractmethod
    def save(self, solution_name: str, graph: Graph) -> None: ...

    @abstractmethod
    def list(self) -> List[str]: ...


class InMemoryGraphStore(GraphStore):
    """In-memory store (testing/dev)."""

    def __init__(self):
        self._graphs: Dict[str, Graph] = {}

    def load(self, solution_name: str) -> Optional[Graph]:
        graph = self._graphs.get(solution_name)
        return copy.deepcopy(graph) if graph is not None else None

    def save(self, solution_name: str, graph: Graph) -> None:
        self._graphs[solution_name] = copy.deepcopy(graph)

    def list(self) -> List[str]:
        return sorted(self._graphs)


class JsonFileGraphStore(GraphStore):
    """One JSON document per solution under `root`."""

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root) if root is not None else get_store_dir()
        self._lock = threading.RLock()

    def path_for(self, solution_name: str) -> Path:
        return self.root / solution_filename(solution_name)

    def load(self, solution_name: str) -> Optional[Graph]:
        with self._lock:
            path = self.path_for(solution_name)
            if not path.exists():
                return None
            try:
                with open(path, "r", encoding="utf-8") as f:
                    graph = Graph.from_dict(json.load(f))
            except (OSError, TypeError, ValueError) as e:
                logger.warning("Unreadable solution file %s (%s); moving it aside", path, e)
                try:
                    path.replace(path.with_name(path.name + ".bak"))
                except OSError:
                    pass
                return None
            logger.debug("Loaded solution %r from %s", solution_name, path)
            return graph

    def save(self, solution_name: str, graph: Graph) -> None:
        with self._lock:
            path = self.path_for(solution_name)
            payload = graph.to_dict()
            payload["solutionName"] = solution_name
            with store_lock(self.root) as locked:
                if not locked:
                    logger.warning("Store lock held by pid %s; writing %s anyway", lock_holder(self.root), path)
                tmp = path.with_name(path.name + ".tmp")
                tmp.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp, "w", encoding="utf-8") as f:
                    f.write(json.dumps(payload, ensure_ascii=False, indent=2))
                tmp.replace(path)
            logger.debug("Saved solution %r to %s", solution_name, path)

    def list(self) -> List[str]:
        if not self.root.exists():
            return []
        names: List[str] = []
        for path in sorted(self.root.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                continue
            if isinstance(data, dict) and isinstance(data.get("solutionName"), str):
                names.append(data["solutionName"])
        return names


def _parse_document(text: str, suffix: str) -> Any:
    if suffix in (".yaml", ".yml"):
        return yaml.safe_load(text)
    if suffix == ".json":
        return json.loads(text)
    try:
        return json.loads(text)
    except ValueError:
        return yaml.safe_load(text)


def load_graph_file(path: Union[str, Path]) -> Graph:
    """Load a solution document from a JSON or YAML file."""
    p = Path(path)
    data = _parse_document(p.read_text(encoding="utf-8"), p.suffix.lower())
    return Graph.from_dict(data)
