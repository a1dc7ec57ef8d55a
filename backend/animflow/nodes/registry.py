"""Executor registry with auto-discovery."""
import importlib
import pkgutil
from typing import Iterable

from ..engine.errors import UnknownNodeKindError
from .base import BaseNode, NodeDefinition


class NodeRegistry:
    """Singleton registry mapping node kinds to BaseNode subclasses."""

    _nodes: dict[str, type[BaseNode]] = {}

    @classmethod
    def register(cls, node_kind: str | None = None):
        """Decorator to register an executor class.

        Usage:
            @NodeRegistry.register("circle")
            class CircleNode(BaseNode):
                ...
        """
        def decorator(node_cls: type[BaseNode]) -> type[BaseNode]:
            name = node_kind or node_cls.__name__
            cls._nodes[name] = node_cls
            return node_cls
        return decorator

    @classmethod
    def has(cls, node_kind: str) -> bool:
        return node_kind in cls._nodes

    @classmethod
    def get(cls, node_kind: str) -> type[BaseNode]:
        if node_kind not in cls._nodes:
            raise UnknownNodeKindError(node_kind)
        return cls._nodes[node_kind]

    @classmethod
    def create(cls, node_kind: str) -> BaseNode:
        return cls.get(node_kind)()

    @classmethod
    def all_definitions(cls) -> dict[str, NodeDefinition]:
        return {
            name: node_cls.get_definition(name)
            for name, node_cls in cls._nodes.items()
        }

    @classmethod
    def missing(cls, kinds: Iterable[str]) -> list[str]:
        return sorted(k for k in kinds if k not in cls._nodes)

    @classmethod
    def discover(cls, package_name: str) -> None:
        """Import all modules in the given package to trigger @register decorators."""
        package = importlib.import_module(package_name)
        if not hasattr(package, "__path__"):
            return
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            if module_name.startswith("_") or module_name in ("base", "registry"):
                continue
            importlib.import_module(f"{package_name}.{module_name}")

    @classmethod
    def clear(cls) -> None:
        cls._nodes.clear()
