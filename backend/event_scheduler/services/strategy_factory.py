"""
Write strategy factory.
Configures which concurrency control strategy event stores use.
"""

from typing import Optional

from event_scheduler.services.interfaces.write_strategy import WriteStrategy
from event_scheduler.services.interfaces.locked_write import LockedWrite
from event_scheduler.services.optimistic_write import OptimisticWrite
from event_scheduler.core.config import get_settings


def get_write_strategy_for(name: str) -> WriteStrategy:
    """
    Build a strategy by name.

    - optimistic: version compare-and-set, for multi-instance deployments
    - locked: per-key lock, for a single server process
    """
    if name == "locked":
        return LockedWrite()
    if name == "optimistic":
        return OptimisticWrite()
    raise ValueError(f"Unknown WRITE_STRATEGY: {name!r}")


# Singleton instance
_strategy: Optional[WriteStrategy] = None


def get_write_strategy() -> WriteStrategy:
    """Get write strategy singleton."""
    global _strategy
    if _strategy is None:
        _strategy = get_write_strategy_for(get_settings().WRITE_STRATEGY)
    return _strategy
