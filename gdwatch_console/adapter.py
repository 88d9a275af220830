"""Translation between the service's stored configuration and :class:`Config`.

The service persists its settings in a "wire" document whose field names
and nesting differ from the client view, and in which most fields may be
missing.  :func:`decode_config` fills every gap with a default so callers
never see an unresolved field; :func:`encode_config` rebuilds the full wire
document that the service expects on update.

Both functions are pure.  Wire-only fields (``my_drive_name``, instance
``name``, ``task_stats`` and friends) are dropped on decode and not
reproduced on encode.
"""

from __future__ import annotations

import json
import warnings
from typing import Any

from .errors import MalformedTemplateError, WireFormatError
from .schema import (
    DEFAULT_BATCH_SLEEP_INTERVAL,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_LIST_DELAY_MS,
    DEFAULT_LISTEN_PORT,
    DEFAULT_LOG_CLEANUP_CRON,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION_DAYS,
    DEFAULT_RATE_LIMIT_QPS,
    DEFAULT_WEBHOOK_PATH,
    AdvancedConfig,
    AuthConfig,
    Config,
    GoogleConfig,
    LogCleanupConfig,
    MappingRule,
    OAuthConfig,
    RcloneConfig,
    RcloneInstance,
    ServerConfig,
    SslConfig,
    SymediaConfig,
)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if isinstance(value, dict):
        return value
    return {}


def _str(value: object, default: str = "", *, key: str) -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value or default
    warnings.warn(f"Invalid string for {key}: {value!r}", RuntimeWarning, stacklevel=3)
    return default


def _int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=3)
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=3)
    return default


def _bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    return bool(value)


def _str_list(value: object, *, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        warnings.warn(f"Invalid list for {key}: {value!r}", RuntimeWarning, stacklevel=3)
        return []
    return [item for item in value if isinstance(item, str)]


def _rules(value: object) -> list[MappingRule]:
    if not isinstance(value, list):
        return []
    rules: list[MappingRule] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        rules.append(
            MappingRule(
                regex=_str(item.get("regex"), key="mapping.regex"),
                replacement=_str(item.get("replacement"), key="mapping.replacement"),
            )
        )
    return rules


def _headers(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(name): "" if v is None else str(v) for name, v in value.items()}


def _template_text(value: object) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _decode_advanced(raw: dict[str, Any]) -> AdvancedConfig:
    # A disabled block carries the default schedule, whatever the wire holds.
    cleanup = LogCleanupConfig()
    if raw.get("log_cleanup_enabled"):
        cleanup = LogCleanupConfig(
            enabled=True,
            retention_days=_int(
                raw.get("log_retention_days"), DEFAULT_LOG_RETENTION_DAYS, key="log_retention_days"
            ),
            cron=_str(
                raw.get("log_cleanup_cron"), DEFAULT_LOG_CLEANUP_CRON, key="log_cleanup_cron"
            ),
        )
    return AdvancedConfig(
        debounce_seconds=_int(
            raw.get("debounce_seconds"), DEFAULT_DEBOUNCE_SECONDS, key="debounce_seconds"
        ),
        log_dir=_str(raw.get("log_dir"), DEFAULT_LOG_DIR, key="log_dir"),
        log_level=_int(raw.get("log_level"), DEFAULT_LOG_LEVEL, key="log_level"),
        log_save_enabled=raw.get("log_save_enabled") is not False,
        log_cleanup=cleanup,
    )


def _decode_server(raw: dict[str, Any]) -> ServerConfig:
    ssl = _section(raw, "ssl")
    return ServerConfig(
        port=_int(raw.get("listen_port"), DEFAULT_LISTEN_PORT, key="listen_port"),
        public_url=_str(raw.get("public_url"), key="public_url"),
        webhook_path=_str(raw.get("webhook_path"), DEFAULT_WEBHOOK_PATH, key="webhook_path"),
        ssl=SslConfig(
            enabled=_bool(ssl.get("enabled"), False),
            cert=_str(ssl.get("cert_path"), key="ssl.cert_path"),
            key=_str(ssl.get("key_path"), key="ssl.key_path"),
        ),
    )


def _decode_google(raw: dict[str, Any]) -> GoogleConfig:
    drive_name = ""
    for candidate in (raw.get("personal_drive_name"), raw.get("my_drive_name")):
        if isinstance(candidate, str) and candidate:
            drive_name = candidate
            break
    return GoogleConfig(
        qps=_int(raw.get("rate_limit_qps"), DEFAULT_RATE_LIMIT_QPS, key="rate_limit_qps"),
        personal_drive_name=drive_name,
        target_drive_ids=_str_list(raw.get("target_drive_ids"), key="target_drive_ids"),
        list_delay=_int(raw.get("list_delay"), DEFAULT_LIST_DELAY_MS, key="list_delay"),
        batch_sleep_interval=_int(
            raw.get("batch_sleep_interval"),
            DEFAULT_BATCH_SLEEP_INTERVAL,
            key="batch_sleep_interval",
        ),
    )


def _decode_rclone(raw: object) -> RcloneConfig:
    if not isinstance(raw, list):
        return RcloneConfig()
    instances: list[RcloneInstance] = []
    rules: list[MappingRule] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        # The per-instance wait flag is not read; the console always waits.
        instances.append(
            RcloneInstance(
                host=_str(item.get("host"), key="rclone.host"),
                endpoint=_str(item.get("endpoint"), key="rclone.endpoint"),
                wait_for_data=True,
            )
        )
        rules.extend(_rules(item.get("mapping")))
    return RcloneConfig(instances=instances, path_mappings=rules)


def _decode_symedia(raw: dict[str, Any], path_mapping: object) -> SymediaConfig:
    return SymediaConfig(
        host=_str(raw.get("host"), key="symedia.host"),
        endpoint=_str(raw.get("endpoint"), key="symedia.endpoint"),
        body_template=_template_text(raw.get("body_template")),
        path_mappings=_rules(path_mapping),
        notify_unmatched=_bool(raw.get("notify_unmatched"), False),
        headers=_headers(raw.get("headers")),
    )


def decode_config(wire: object) -> Config:
    """Build a fully populated :class:`Config` from a wire document."""

    if not isinstance(wire, dict):
        raise WireFormatError(f"config must be an object, got {type(wire).__name__}")
    auth = _section(wire, "auth")
    oauth = _section(wire, "oauth_config")
    return Config(
        auth=AuthConfig(
            username=_str(auth.get("username"), key="auth.username"),
            password=_str(auth.get("password"), key="auth.password"),
        ),
        oauth=OAuthConfig(
            client_id=_str(oauth.get("client_id"), key="oauth_config.client_id"),
            client_secret=_str(oauth.get("client_secret"), key="oauth_config.client_secret"),
            redirect_uri=_str(oauth.get("redirect_uri"), key="oauth_config.redirect_uri"),
        ),
        advanced=_decode_advanced(_section(wire, "advanced")),
        server=_decode_server(_section(wire, "server")),
        google=_decode_google(_section(wire, "google")),
        rclone=_decode_rclone(wire.get("rclone")),
        symedia=_decode_symedia(_section(wire, "symedia"), wire.get("path_mapping")),
    )


def parse_body_template(text: str) -> dict[str, Any]:
    """Parse the editable body template into the object the service stores."""

    if not text.strip():
        return {}
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedTemplateError(f"invalid body template json: {exc.msg}") from exc
    if not isinstance(value, dict):
        raise MalformedTemplateError("body template must be a JSON object")
    return value


def _encode_rules(rules: list[MappingRule]) -> list[dict[str, str]]:
    return [{"regex": rule.regex, "replacement": rule.replacement} for rule in rules]


def encode_config(config: Config) -> dict[str, Any]:
    """Build the full wire document for ``config``.

    Each rclone instance receives its own copy of the shared rule list and a
    positional ``instance_<n>`` name.  Raises :class:`MalformedTemplateError`
    when the Symedia body template is not a JSON object.
    """

    body_template = parse_body_template(config.symedia.body_template)
    advanced = config.advanced
    cleanup = advanced.log_cleanup
    server = config.server
    google = config.google
    return {
        "auth": {
            "username": config.auth.username,
            "password": config.auth.password,
        },
        "oauth_config": {
            "client_id": config.oauth.client_id,
            "client_secret": config.oauth.client_secret,
            "redirect_uri": config.oauth.redirect_uri,
        },
        "advanced": {
            "log_level": advanced.log_level,
            "log_save_enabled": advanced.log_save_enabled,
            "log_dir": advanced.log_dir,
            "debounce_seconds": advanced.debounce_seconds,
            "log_cleanup_enabled": bool(cleanup.enabled),
            "log_retention_days": cleanup.retention_days or DEFAULT_LOG_RETENTION_DAYS,
            "log_cleanup_cron": cleanup.cron or DEFAULT_LOG_CLEANUP_CRON,
        },
        "server": {
            "listen_port": server.port,
            "public_url": server.public_url,
            "webhook_path": server.webhook_path,
            "ssl": {
                "enabled": bool(server.ssl.enabled),
                "cert_path": server.ssl.cert or "",
                "key_path": server.ssl.key or "",
                "restrict_to_domain": False,
            },
        },
        "google": {
            "rate_limit_qps": google.qps,
            "personal_drive_name": google.personal_drive_name,
            "target_drive_ids": list(google.target_drive_ids),
            "list_delay": google.list_delay or DEFAULT_LIST_DELAY_MS,
            "batch_sleep_interval": google.batch_sleep_interval or DEFAULT_BATCH_SLEEP_INTERVAL,
        },
        "rclone": [
            {
                "name": f"instance_{index}",
                "host": instance.host,
                "endpoint": instance.endpoint,
                "mapping": _encode_rules(config.rclone.path_mappings),
            }
            for index, instance in enumerate(config.rclone.instances)
        ],
        "symedia": {
            "host": config.symedia.host,
            "endpoint": config.symedia.endpoint,
            "notify_unmatched": config.symedia.notify_unmatched,
            "body_template": body_template,
            "headers": dict(config.symedia.headers),
        },
        "path_mapping": _encode_rules(config.symedia.path_mappings),
    }
