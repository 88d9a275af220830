"""Client-side owner of the service configuration.

:class:`ConfigStore` holds the single decoded :class:`Config`, the
load/save lifecycle flags and the last error message.  Every update
publishes a new, independently owned value; a ``Config`` obtained from
the store is never modified afterwards, so holders of an older reference
keep a consistent snapshot.

The store applies no locking.  Overlapping ``load()`` and ``save()`` calls
resolve last-write-wins: a slow load that completes after a local edit
replaces that edit.  Callers that need load, edit and save to happen in
sequence must await them in sequence.
"""

from __future__ import annotations

import copy
import dataclasses
import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from .adapter import decode_config, encode_config
from .client import GdWatchClient
from .errors import ConsoleError
from .schema import (
    AdvancedConfig,
    AuthConfig,
    Config,
    GoogleConfig,
    MappingRule,
    OAuthConfig,
    RcloneConfig,
    RcloneInstance,
    ServerConfig,
    SymediaConfig,
)

logger = logging.getLogger(__name__)

SECTION_TYPES: dict[str, type] = {
    "auth": AuthConfig,
    "oauth": OAuthConfig,
    "advanced": AdvancedConfig,
    "server": ServerConfig,
    "google": GoogleConfig,
    "rclone": RcloneConfig,
    "symedia": SymediaConfig,
}


class FieldPath(str, Enum):
    """Every leaf of :class:`Config` that can be updated on its own."""

    AUTH_USERNAME = "auth.username"
    AUTH_PASSWORD = "auth.password"
    OAUTH_CLIENT_ID = "oauth.client_id"
    OAUTH_CLIENT_SECRET = "oauth.client_secret"
    OAUTH_REDIRECT_URI = "oauth.redirect_uri"
    ADVANCED_DEBOUNCE_SECONDS = "advanced.debounce_seconds"
    ADVANCED_LOG_DIR = "advanced.log_dir"
    ADVANCED_LOG_LEVEL = "advanced.log_level"
    ADVANCED_LOG_SAVE_ENABLED = "advanced.log_save_enabled"
    ADVANCED_LOG_CLEANUP_ENABLED = "advanced.log_cleanup.enabled"
    ADVANCED_LOG_CLEANUP_RETENTION_DAYS = "advanced.log_cleanup.retention_days"
    ADVANCED_LOG_CLEANUP_CRON = "advanced.log_cleanup.cron"
    SERVER_PORT = "server.port"
    SERVER_PUBLIC_URL = "server.public_url"
    SERVER_WEBHOOK_PATH = "server.webhook_path"
    SERVER_SSL_ENABLED = "server.ssl.enabled"
    SERVER_SSL_CERT = "server.ssl.cert"
    SERVER_SSL_KEY = "server.ssl.key"
    GOOGLE_QPS = "google.qps"
    GOOGLE_PERSONAL_DRIVE_NAME = "google.personal_drive_name"
    GOOGLE_TARGET_DRIVE_IDS = "google.target_drive_ids"
    GOOGLE_LIST_DELAY = "google.list_delay"
    GOOGLE_BATCH_SLEEP_INTERVAL = "google.batch_sleep_interval"
    RCLONE_INSTANCES = "rclone.instances"
    RCLONE_PATH_MAPPINGS = "rclone.path_mappings"
    SYMEDIA_HOST = "symedia.host"
    SYMEDIA_ENDPOINT = "symedia.endpoint"
    SYMEDIA_BODY_TEMPLATE = "symedia.body_template"
    SYMEDIA_PATH_MAPPINGS = "symedia.path_mappings"
    SYMEDIA_NOTIFY_UNMATCHED = "symedia.notify_unmatched"
    SYMEDIA_HEADERS = "symedia.headers"

    @property
    def kind(self) -> str:
        return _LEAF_KINDS[self]


_LEAF_KINDS: dict[FieldPath, str] = {
    FieldPath.AUTH_USERNAME: "str",
    FieldPath.AUTH_PASSWORD: "str",
    FieldPath.OAUTH_CLIENT_ID: "str",
    FieldPath.OAUTH_CLIENT_SECRET: "str",
    FieldPath.OAUTH_REDIRECT_URI: "str",
    FieldPath.ADVANCED_DEBOUNCE_SECONDS: "int",
    FieldPath.ADVANCED_LOG_DIR: "str",
    FieldPath.ADVANCED_LOG_LEVEL: "int",
    FieldPath.ADVANCED_LOG_SAVE_ENABLED: "bool",
    FieldPath.ADVANCED_LOG_CLEANUP_ENABLED: "bool",
    FieldPath.ADVANCED_LOG_CLEANUP_RETENTION_DAYS: "int",
    FieldPath.ADVANCED_LOG_CLEANUP_CRON: "str",
    FieldPath.SERVER_PORT: "int",
    FieldPath.SERVER_PUBLIC_URL: "str",
    FieldPath.SERVER_WEBHOOK_PATH: "str",
    FieldPath.SERVER_SSL_ENABLED: "bool",
    FieldPath.SERVER_SSL_CERT: "str",
    FieldPath.SERVER_SSL_KEY: "str",
    FieldPath.GOOGLE_QPS: "int",
    FieldPath.GOOGLE_PERSONAL_DRIVE_NAME: "str",
    FieldPath.GOOGLE_TARGET_DRIVE_IDS: "str_list",
    FieldPath.GOOGLE_LIST_DELAY: "int",
    FieldPath.GOOGLE_BATCH_SLEEP_INTERVAL: "int",
    FieldPath.RCLONE_INSTANCES: "instances",
    FieldPath.RCLONE_PATH_MAPPINGS: "rules",
    FieldPath.SYMEDIA_HOST: "str",
    FieldPath.SYMEDIA_ENDPOINT: "str",
    FieldPath.SYMEDIA_BODY_TEMPLATE: "str",
    FieldPath.SYMEDIA_PATH_MAPPINGS: "rules",
    FieldPath.SYMEDIA_NOTIFY_UNMATCHED: "bool",
    FieldPath.SYMEDIA_HEADERS: "headers",
}


def _matches_kind(kind: str, value: object) -> bool:
    if kind == "str":
        return isinstance(value, str)
    if kind == "int":
        return isinstance(value, int) and not isinstance(value, bool)
    if kind == "bool":
        return isinstance(value, bool)
    if kind == "str_list":
        return isinstance(value, list) and all(isinstance(item, str) for item in value)
    if kind == "rules":
        return isinstance(value, list) and all(isinstance(item, MappingRule) for item in value)
    if kind == "instances":
        return isinstance(value, list) and all(isinstance(item, RcloneInstance) for item in value)
    if kind == "headers":
        return isinstance(value, dict) and all(
            isinstance(k, str) and isinstance(v, str) for k, v in value.items()
        )
    return False


_MISSING = object()


def _section_mismatch(key: str, section: object) -> FieldPath | None:
    """Return the first leaf of ``section`` whose value does not fit its kind."""
    prefix = f"{key}."
    for field_path in FieldPath:
        if not field_path.value.startswith(prefix):
            continue
        node: Any = section
        for part in field_path.value[len(prefix) :].split("."):
            node = getattr(node, part, _MISSING)
        if node is _MISSING or not _matches_kind(field_path.kind, node):
            return field_path
    return None


def resolve_path(path: FieldPath | str) -> FieldPath:
    if isinstance(path, FieldPath):
        return path
    try:
        return FieldPath(path)
    except ValueError:
        raise ValueError(f"unknown config field: {path}") from None


def read_path(config: Config, path: FieldPath | str) -> Any:
    node: Any = config
    for part in resolve_path(path).value.split("."):
        node = getattr(node, part)
    return node


class ConfigStore:
    def __init__(self, client: GdWatchClient) -> None:
        self.client = client
        self._value: Config | None = None
        self.loading = False
        self.saving = False
        self.last_error: str | None = None
        self.revision = 0
        self._listeners: list[Callable[[Config | None], None]] = []

    @property
    def value(self) -> Config | None:
        return self._value

    @property
    def is_loaded(self) -> bool:
        return self._value is not None

    def subscribe(self, callback: Callable[[Config | None], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _publish(self, value: Config | None) -> None:
        self._value = value
        self.revision += 1
        for callback in list(self._listeners):
            callback(value)

    async def load(self) -> bool:
        """Fetch and decode the configuration.

        Failures are recorded in ``last_error``; a previously loaded value is
        kept.  Returns whether a new value was published.
        """
        self.loading = True
        self.last_error = None
        try:
            payload = await self.client.fetch_config()
            if isinstance(payload, str):
                payload = json.loads(payload)
            config = decode_config(payload)
        except (ConsoleError, ValueError) as exc:
            self.last_error = str(exc) or "Failed to fetch config"
            logger.warning("config load failed", exc_info=exc)
            return False
        finally:
            self.loading = False
        self._publish(config)
        return True

    async def save(self) -> None:
        """Send the whole configuration to the service.

        Local edits are kept whether or not the save succeeds.  Errors are
        recorded in ``last_error`` and re-raised.
        """
        config = self._value
        if config is None:
            return
        self.saving = True
        self.last_error = None
        try:
            document = encode_config(config)
            await self.client.update_config(document)
        except ConsoleError as exc:
            self.last_error = str(exc) or "Failed to save config"
            logger.warning("config save failed", exc_info=exc)
            raise
        finally:
            self.saving = False

    def set_field(self, key: str, value: Any) -> None:
        """Replace one top-level section."""
        if self._value is None:
            return
        expected = SECTION_TYPES.get(key)
        if expected is None:
            raise KeyError(key)
        if not isinstance(value, expected):
            raise TypeError(f"{key} must be {expected.__name__}")
        mismatch = _section_mismatch(key, value)
        if mismatch is not None:
            raise TypeError(f"{mismatch.value} expects {mismatch.kind}")
        self._publish(dataclasses.replace(self._value, **{key: copy.deepcopy(value)}))

    def set_path(self, path: FieldPath | str, value: Any) -> None:
        """Replace one leaf, publishing a deep copy of the configuration."""
        if self._value is None:
            return
        field_path = resolve_path(path)
        if not _matches_kind(field_path.kind, value):
            raise TypeError(f"{field_path.value} expects {field_path.kind}")
        updated = copy.deepcopy(self._value)
        *parents, leaf = field_path.value.split(".")
        node: Any = updated
        for part in parents:
            node = getattr(node, part)
        setattr(node, leaf, copy.deepcopy(value))
        self._publish(updated)

    def get_path(self, path: FieldPath | str) -> Any:
        if self._value is None:
            return None
        return copy.deepcopy(read_path(self._value, path))

    def reset(self) -> None:
        if self._value is None:
            return
        self._publish(None)
