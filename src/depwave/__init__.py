from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "__version__",
    "DependencyGraph",
    "DependencyResolver",
    "ExecutionOrder",
    "Issue",
    "ReadyIssues",
    "build_graph",
    "classify",
    "compute_execution_order",
    "compute_parallel_execution_set",
    "detect_cycles",
    "find_critical_path",
    "get_dependency_resolver",
    "validate_execution",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .graph import build_graph, compute_execution_order, detect_cycles, find_critical_path
    from .models import DependencyGraph, ExecutionOrder, Issue, ReadyIssues
    from .readiness import classify, compute_parallel_execution_set, validate_execution
    from .resolver import DependencyResolver, get_dependency_resolver

_LAZY = {
    "DependencyGraph": "models",
    "ExecutionOrder": "models",
    "Issue": "models",
    "ReadyIssues": "models",
    "build_graph": "graph",
    "compute_execution_order": "graph",
    "detect_cycles": "graph",
    "find_critical_path": "graph",
    "classify": "readiness",
    "compute_parallel_execution_set": "readiness",
    "validate_execution": "readiness",
    "DependencyResolver": "resolver",
    "get_dependency_resolver": "resolver",
}


def __getattr__(name: str):
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module 'depwave' has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(f".{module_name}", __name__), name)
