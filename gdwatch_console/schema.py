from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_DEBOUNCE_SECONDS = 5
DEFAULT_LOG_DIR = "./logs"
DEFAULT_LOG_LEVEL = 1
DEFAULT_LOG_RETENTION_DAYS = 7
DEFAULT_LOG_CLEANUP_CRON = "0 0 3 * * ?"
DEFAULT_LISTEN_PORT = 8448
DEFAULT_WEBHOOK_PATH = "/gd-webhook"
DEFAULT_RATE_LIMIT_QPS = 5
DEFAULT_LIST_DELAY_MS = 1000
DEFAULT_BATCH_SLEEP_INTERVAL = 300

# Log verbosity levels understood by the service.
LOG_LEVEL_QUIET = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_DEBUG = 2


@dataclass
class MappingRule:
    regex: str = ""
    replacement: str = ""


@dataclass
class AuthConfig:
    username: str = ""
    password: str = ""


@dataclass
class OAuthConfig:
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""


@dataclass
class LogCleanupConfig:
    enabled: bool = False
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS
    cron: str = DEFAULT_LOG_CLEANUP_CRON


@dataclass
class AdvancedConfig:
    debounce_seconds: int = DEFAULT_DEBOUNCE_SECONDS
    log_dir: str = DEFAULT_LOG_DIR
    log_level: int = DEFAULT_LOG_LEVEL
    log_save_enabled: bool = True
    log_cleanup: LogCleanupConfig = field(default_factory=LogCleanupConfig)


@dataclass
class SslConfig:
    enabled: bool = False
    cert: str = ""
    key: str = ""


@dataclass
class ServerConfig:
    port: int = DEFAULT_LISTEN_PORT
    public_url: str = ""
    webhook_path: str = DEFAULT_WEBHOOK_PATH
    ssl: SslConfig = field(default_factory=SslConfig)


@dataclass
class GoogleConfig:
    qps: int = DEFAULT_RATE_LIMIT_QPS
    personal_drive_name: str = ""
    target_drive_ids: list[str] = field(default_factory=list)
    # Milliseconds between list calls.
    list_delay: int = DEFAULT_LIST_DELAY_MS
    batch_sleep_interval: int = DEFAULT_BATCH_SLEEP_INTERVAL


@dataclass
class RcloneInstance:
    host: str = ""
    endpoint: str = ""
    wait_for_data: bool = True


@dataclass
class RcloneConfig:
    instances: list[RcloneInstance] = field(default_factory=list)
    # Shared by every instance; the service stores one copy per instance.
    path_mappings: list[MappingRule] = field(default_factory=list)


@dataclass
class SymediaConfig:
    host: str = ""
    endpoint: str = ""
    body_template: str = ""
    path_mappings: list[MappingRule] = field(default_factory=list)
    notify_unmatched: bool = False
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class Config:
    """Client-side view of the service configuration.

    Every field is resolved; a decoded ``Config`` never holds ``None``.
    """

    auth: AuthConfig = field(default_factory=AuthConfig)
    oauth: OAuthConfig = field(default_factory=OAuthConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)
    rclone: RcloneConfig = field(default_factory=RcloneConfig)
    symedia: SymediaConfig = field(default_factory=SymediaConfig)
