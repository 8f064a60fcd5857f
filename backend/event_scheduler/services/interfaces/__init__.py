"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .write_strategy import WriteStrategy, Mutation
from .locked_write import LockedWrite

__all__ = ['WriteStrategy', 'Mutation', 'LockedWrite']
