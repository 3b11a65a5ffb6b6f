"""
Validation module for lexsync.

Provides payload schemas, shared error types, and configuration validation.
"""

from validation.errors import PermanentError, is_connectivity_error
from validation.payloads import PayloadValidationError, validate_payload
from validation.config import QueueSettings, SyncSettings, load_queue_settings, load_settings

__all__ = [
    'PermanentError',
    'is_connectivity_error',
    'PayloadValidationError',
    'validate_payload',
    'QueueSettings',
    'SyncSettings',
    'load_queue_settings',
    'load_settings',
]
