"""
Configuration for lexsync using pydantic-settings with env var and YAML file support.

Precedence (highest to lowest):
1. Explicit keyword arguments (CLI flags, tests)
2. LEXSYNC_-prefixed environment variables
3. YAML config file (lexsync.yml, or the path in LEXSYNC_CONFIG_FILE)
4. Defaults defined below

QueueSettings covers the local queue and needs no remote store; the manual
queue tool uses it for commands that never touch the network. SyncSettings
extends it and requires remote_url (LEXSYNC_REMOTE_URL).
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

log = logging.getLogger('lexsync.config')

DEFAULT_CONFIG_FILE = 'lexsync.yml'
CONFIG_FILE_ENV = 'LEXSYNC_CONFIG_FILE'

_LOG_LEVELS = ('trace', 'debug', 'info', 'warning', 'error')


def _default_data_dir() -> str:
    return os.path.join(os.path.expanduser('~'), '.lexsync', 'data')


class QueueSettings(BaseSettings):
    """
    Local queue configuration, loadable without a remote store.

    Optional tunables:
        data_dir: Directory holding the durable queue (default: ~/.lexsync/data)
        storage_key: Key the queue is persisted under (default: lexsync-offline-queue)
        max_retries: Failed attempts before an operation is exhausted (default: 3, range: 1-20)
        strict_tables: Reject writes to tables without a payload schema (default: False)
        log_level: trace, debug, info, warning or error (default: info)
    """

    model_config = SettingsConfigDict(
        env_prefix='LEXSYNC_',
        yaml_file=DEFAULT_CONFIG_FILE,
        yaml_file_encoding='utf-8',
        extra='ignore',
    )

    data_dir: str = Field(default_factory=_default_data_dir)
    storage_key: str = Field(default='lexsync-offline-queue', min_length=1)
    max_retries: int = Field(default=3, ge=1, le=20)

    strict_tables: bool = Field(
        default=False,
        description="Reject queued writes to tables that have no payload schema"
    )
    log_level: str = 'info'

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Return sources in priority order: init > env > YAML."""
        yaml_file = os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
        yaml_source = YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file)
        return (init_settings, env_settings, yaml_source)

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log_level is one of: trace, debug, info, warning, error."""
        if isinstance(v, str) and v.lower() in _LOG_LEVELS:
            return v.lower()
        raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got: {v}")


class SyncSettings(QueueSettings):
    """
    Offline sync configuration with validation.

    Required:
        remote_url: Hosted database project URL (e.g., https://db.example.com)

    Optional tunables (in addition to QueueSettings):
        remote_api_key: Project API key sent with every request (default: "")
        operation_timeout: Deadline per remote write in seconds (default: 30.0, range: 1.0-300.0)
        health_check_interval: Seconds between connectivity probes (default: 5.0, range: 0.5-300.0)
        health_check_timeout: Deadline per probe in seconds (default: 5.0, range: 0.5-60.0)
        summary_grace_period: Seconds the final sync summary stays visible (default: 3.0, range: 0-60)
    """

    # Required field
    remote_url: str

    remote_api_key: str = ''

    # Timing tunables
    operation_timeout: float = Field(default=30.0, ge=1.0, le=300.0)
    health_check_interval: float = Field(default=5.0, ge=0.5, le=300.0)
    health_check_timeout: float = Field(default=5.0, ge=0.5, le=60.0)
    summary_grace_period: float = Field(default=3.0, ge=0.0, le=60.0)

    @field_validator('remote_url', mode='after')
    @classmethod
    def validate_remote_url(cls, v: str) -> str:
        """Validate remote_url is a valid HTTP/HTTPS URL."""
        if not v:
            raise ValueError('remote_url is required')
        if not v.startswith(('http://', 'https://')):
            raise ValueError('remote_url must start with http:// or https://')
        return v.rstrip('/')  # Normalize: remove trailing slash

    @property
    def masked_api_key(self) -> str:
        if not self.remote_api_key:
            return '(none)'
        if len(self.remote_api_key) > 8:
            return self.remote_api_key[:4] + '****' + self.remote_api_key[-4:]
        return '****'

    def log_config(self) -> None:
        """Log configuration with masked API key."""
        log.info(
            f"lexsync config: url={self.remote_url}, api_key={self.masked_api_key}, "
            f"data_dir={self.data_dir}, max_retries={self.max_retries}, "
            f"operation_timeout={self.operation_timeout}s, "
            f"health_check_interval={self.health_check_interval}s, "
            f"strict_tables={self.strict_tables}"
        )


def _load(settings_cls, overrides):
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return (settings_cls(**values), None)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            errors.append(f"{field}: {error['msg']}")
        return (None, '; '.join(errors))


def load_settings(**overrides) -> tuple[Optional[SyncSettings], Optional[str]]:
    """
    Build SyncSettings from overrides, environment and YAML.

    Args:
        **overrides: Explicit values; None values are ignored

    Returns:
        Tuple of (SyncSettings, None) on success,
        or (None, error_message) on validation failure
    """
    return _load(SyncSettings, overrides)


def load_queue_settings(**overrides) -> tuple[Optional[QueueSettings], Optional[str]]:
    """Build QueueSettings the same way as load_settings, without requiring remote_url."""
    return _load(QueueSettings, overrides)


__all__ = ['QueueSettings', 'SyncSettings', 'load_settings', 'load_queue_settings', 'ValidationError']
