"""Event handlers that derive pool, participant, factory and rollup state."""

from poolgraph.sync.context import HandlerContext
from poolgraph.sync.dispatch import Dispatcher

__all__ = ["Dispatcher", "HandlerContext"]
