"""
flowcontext: potential-context resolution for no-code flow graphs.

Main interface: resolve()
"""

__version__ = "0.1.0"

from .core.analysis import ContextResolver, resolve
from .core.context import PotentialContext
from .core.models import Graph

__all__ = ["ContextResolver", "Graph", "PotentialContext", "resolve"]
