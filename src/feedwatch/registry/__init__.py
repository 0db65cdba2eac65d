"""Observer registry."""

from feedwatch.registry.observers import ObserverRegistry

__all__ = ["ObserverRegistry"]
