from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


class ConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class DiscordConfig:
    token: str
    prefix: str = "."
    application_id: int | None = None
    sync_commands_on_start: bool = True
    status_text: str = "Support tickets"
    activity_type: str = "watching"
    allowed_mentions_everyone: bool = False


@dataclass(slots=True)
class DatabaseConfig:
    url: str = "sqlite:///./data/tickets.db"
    pool_min_size: int = 1
    pool_max_size: int = 5
    timeout_seconds: int = 30


@dataclass(slots=True)
class RedisConfig:
    enabled: bool = False
    url: str = "redis://localhost:6379/0"
    default_ttl: int = 120


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    directory: str = "logs"
    file_name: str = "bot.log"
    max_bytes: int = 10_000_000
    backup_count: int = 10
    json_console: bool = False


@dataclass(slots=True)
class EmbedColors:
    bot_embed: str = "#00feff"
    success: str = "#00A56A"
    error: str = "#D61A3C"
    warning: str = "#F7E919"


@dataclass(slots=True)
class TicketConfig:
    default_limit: int = 10
    category_timeout_seconds: int = 60
    footer_text: str = ""
    staff_notice_icon_url: str = ""
    panel_title: str = "Support Tickets"
    panel_description: str = "Press the button below to open a ticket."
    colors: EmbedColors = field(default_factory=EmbedColors)


@dataclass(slots=True)
class TranscriptConfig:
    history_limit: int = 100
    attach_on_paste_failure: bool = True


@dataclass(slots=True)
class PasteConfig:
    enabled: bool = True
    api_url: str = "https://sourceb.in/api/bins"
    site_url: str = "https://sourceb.in"
    short_url: str = "https://srcb.in"
    raw_url: str = "https://cdn.sourceb.in/bins"
    timeout_seconds: int = 15


@dataclass(slots=True)
class WebhookLogConfig:
    enabled: bool = False
    url: str = ""


@dataclass(slots=True)
class FastApiConfig:
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    api_key: str = ""


@dataclass(slots=True)
class I18NConfig:
    default_locale: str = "en-US"
    supported_locales: list[str] = field(default_factory=lambda: ["en-US", "tr-TR"])


@dataclass(slots=True)
class AppConfig:
    discord: DiscordConfig
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tickets: TicketConfig = field(default_factory=TicketConfig)
    transcripts: TranscriptConfig = field(default_factory=TranscriptConfig)
    paste: PasteConfig = field(default_factory=PasteConfig)
    webhook_log: WebhookLogConfig = field(default_factory=WebhookLogConfig)
    fastapi: FastApiConfig = field(default_factory=FastApiConfig)
    i18n: I18NConfig = field(default_factory=I18NConfig)
    enabled_extensions: list[str] = field(
        default_factory=lambda: [
            "cogs.events",
            "cogs.tickets",
        ]
    )


def _get_env_str(key: str, fallback: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None:
        return fallback
    cleaned = value.strip()
    return cleaned if cleaned else fallback


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _deep_get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    node: Any = data
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw


def _load_ticket_config(raw: dict[str, Any]) -> TicketConfig:
    defaults = EmbedColors()
    colors = EmbedColors(
        bot_embed=str(_deep_get(raw, "tickets", "colors", "bot_embed", default=defaults.bot_embed)),
        success=str(_deep_get(raw, "tickets", "colors", "success", default=defaults.success)),
        error=str(_deep_get(raw, "tickets", "colors", "error", default=defaults.error)),
        warning=str(_deep_get(raw, "tickets", "colors", "warning", default=defaults.warning)),
    )
    default_limit = _as_int(_deep_get(raw, "tickets", "default_limit"), 10)
    if default_limit < 1:
        raise ConfigError("tickets.default_limit must be at least 1")
    timeout = _as_int(_deep_get(raw, "tickets", "category_timeout_seconds"), 60)
    if timeout < 1:
        raise ConfigError("tickets.category_timeout_seconds must be at least 1")
    return TicketConfig(
        default_limit=default_limit,
        category_timeout_seconds=timeout,
        footer_text=str(_deep_get(raw, "tickets", "footer_text", default="")),
        staff_notice_icon_url=str(_deep_get(raw, "tickets", "staff_notice_icon_url", default="")),
        panel_title=str(_deep_get(raw, "tickets", "panel_title", default="Support Tickets")),
        panel_description=str(
            _deep_get(
                raw,
                "tickets",
                "panel_description",
                default="Press the button below to open a ticket.",
            )
        ),
        colors=colors,
    )


def load_config(config_path: Path) -> AppConfig:
    env_path = config_path.parent.parent / ".env"
    load_dotenv(env_path)
    raw = _load_yaml(config_path)

    discord_token = _get_env_str("DISCORD_TOKEN", _deep_get(raw, "discord", "token"))
    if not discord_token or "${" in discord_token:
        raise ConfigError("DISCORD_TOKEN is required")

    discord_cfg = DiscordConfig(
        token=discord_token,
        prefix=str(_get_env_str("BOT_PREFIX", _deep_get(raw, "discord", "prefix", default="."))),
        application_id=_as_optional_int(
            _get_env_str("DISCORD_APPLICATION_ID", _deep_get(raw, "discord", "application_id"))
        ),
        sync_commands_on_start=_as_bool(
            _get_env_str("SYNC_COMMANDS"),
            _as_bool(_deep_get(raw, "discord", "sync_commands_on_start"), True),
        ),
        status_text=str(_deep_get(raw, "discord", "status_text", default="Support tickets")),
        activity_type=str(_deep_get(raw, "discord", "activity_type", default="watching")),
        allowed_mentions_everyone=_as_bool(
            _deep_get(raw, "discord", "allowed_mentions_everyone"), False
        ),
    )

    database_cfg = DatabaseConfig(
        url=str(_get_env_str("DATABASE_URL", _deep_get(raw, "database", "url", default="sqlite:///./data/tickets.db"))),
        pool_min_size=_as_int(_deep_get(raw, "database", "pool_min_size"), 1),
        pool_max_size=_as_int(_deep_get(raw, "database", "pool_max_size"), 5),
        timeout_seconds=_as_int(
            _get_env_str("DB_TIMEOUT_SECONDS", None),
            _as_int(_deep_get(raw, "database", "timeout_seconds"), 30),
        ),
    )

    redis_cfg = RedisConfig(
        enabled=_as_bool(_get_env_str("REDIS_ENABLED"), _as_bool(_deep_get(raw, "redis", "enabled"), False)),
        url=str(_get_env_str("REDIS_URL", _deep_get(raw, "redis", "url", default="redis://localhost:6379/0"))),
        default_ttl=_as_int(_deep_get(raw, "redis", "default_ttl"), 120),
    )

    logging_cfg = LoggingConfig(
        level=str(_get_env_str("LOG_LEVEL", _deep_get(raw, "logging", "level", default="INFO"))),
        directory=str(_deep_get(raw, "logging", "directory", default="logs")),
        file_name=str(_deep_get(raw, "logging", "file_name", default="bot.log")),
        max_bytes=_as_int(_deep_get(raw, "logging", "max_bytes"), 10_000_000),
        backup_count=_as_int(_deep_get(raw, "logging", "backup_count"), 10),
        json_console=_as_bool(_deep_get(raw, "logging", "json_console"), False),
    )

    transcript_cfg = TranscriptConfig(
        history_limit=_as_int(_deep_get(raw, "transcripts", "history_limit"), 100),
        attach_on_paste_failure=_as_bool(
            _deep_get(raw, "transcripts", "attach_on_paste_failure"), True
        ),
    )

    paste_defaults = PasteConfig()
    paste_cfg = PasteConfig(
        enabled=_as_bool(_deep_get(raw, "paste", "enabled"), True),
        api_url=str(_deep_get(raw, "paste", "api_url", default=paste_defaults.api_url)),
        site_url=str(_deep_get(raw, "paste", "site_url", default=paste_defaults.site_url)),
        short_url=str(_deep_get(raw, "paste", "short_url", default=paste_defaults.short_url)),
        raw_url=str(_deep_get(raw, "paste", "raw_url", default=paste_defaults.raw_url)),
        timeout_seconds=_as_int(_deep_get(raw, "paste", "timeout_seconds"), 15),
    )

    webhook_cfg = WebhookLogConfig(
        enabled=_as_bool(_deep_get(raw, "webhook_log", "enabled"), False),
        url=str(_get_env_str("WEBHOOK_LOG_URL", _deep_get(raw, "webhook_log", "url", default=""))),
    )

    fastapi_cfg = FastApiConfig(
        enabled=_as_bool(_deep_get(raw, "fastapi", "enabled"), False),
        host=str(_deep_get(raw, "fastapi", "host", default="0.0.0.0")),
        port=_as_int(_deep_get(raw, "fastapi", "port"), 8000),
        api_key=str(_get_env_str("OPS_API_KEY", _deep_get(raw, "fastapi", "api_key", default=""))),
    )

    i18n_cfg = I18NConfig(
        default_locale=str(_deep_get(raw, "i18n", "default_locale", default="en-US")),
        supported_locales=list(_deep_get(raw, "i18n", "supported_locales", default=["en-US", "tr-TR"])),
    )

    enabled_extensions = [
        str(ext)
        for ext in list(
            _deep_get(
                raw,
                "enabled_extensions",
                default=["cogs.events", "cogs.tickets"],
            )
        )
    ]

    return AppConfig(
        discord=discord_cfg,
        database=database_cfg,
        redis=redis_cfg,
        logging=logging_cfg,
        tickets=_load_ticket_config(raw),
        transcripts=transcript_cfg,
        paste=paste_cfg,
        webhook_log=webhook_cfg,
        fastapi=fastapi_cfg,
        i18n=i18n_cfg,
        enabled_extensions=enabled_extensions,
    )
