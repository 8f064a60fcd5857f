"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .kv_backend import KeyValueBackend, InMemoryBackend, RedisBackend, get_backend, close_backend
from .identity import IdentityProvider, StaticIdentityProvider, ANONYMOUS
from .calls import bounded

__all__ = [
    'KeyValueBackend', 'InMemoryBackend', 'RedisBackend', 'get_backend', 'close_backend',
    'IdentityProvider', 'StaticIdentityProvider', 'ANONYMOUS', 'bounded',
]
