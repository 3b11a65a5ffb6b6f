"""
Remote store access: the REST client for the hosted database and its health probe.
"""

from remote.client import (
    RemoteConnectionError,
    RemoteRequestError,
    RemoteStore,
    RemoteStoreError,
    RestRemoteStore,
)
from remote.health import check_remote_health

__all__ = [
    'RemoteConnectionError',
    'RemoteRequestError',
    'RemoteStore',
    'RemoteStoreError',
    'RestRemoteStore',
    'check_remote_health',
]
