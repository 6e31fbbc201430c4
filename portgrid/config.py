import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional
from urllib.parse import urlparse

import yaml

from .aggregator import DEFAULT_TIMEOUT
from .cache_manager import DEFAULT_TTL_SECONDS
from .errors import ConfigurationError
from .netdisco_client import DEFAULT_BATCH_SIZE
from .patterns import parse_patterns
from .sections import SectionConfig

logger = logging.getLogger(__name__)

SUPPORTED_SOURCES = ("librenms", "netdisco")


def _normalize_url(url: object, name: str) -> Optional[str]:
    """Normalize a base URL and ensure it has a host. Empty values stay None."""
    if not isinstance(url, str) or not url.strip():
        return None
    u = url.strip().rstrip("/")
    # Collapse extra slashes after :// (e.g. https:///host -> https://host)
    u = re.sub(r"(https?):///+", r"\1://", u)
    parsed = urlparse(u)
    if not parsed.netloc:
        raise ConfigurationError(
            f"{name} has no host: {url!r}. Use e.g. https://librenms.example.com (no extra slashes)."
        )
    return u


def _parse_bool(name: str, raw: object, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    v = str(raw).strip().lower()
    if v in {"1", "true", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "no", "n", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}={raw!r} (expected true/false).")


def _parse_int(name: str, raw: object, default: int, minimum: int = 1) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _parse_patterns(name: str, raw: object) -> List[str]:
    try:
        return parse_patterns(raw)
    except TypeError as exc:
        raise ConfigurationError(f"{name}: {exc}") from exc


def _parse_data_source(raw: object) -> str:
    source = str(raw or "librenms").strip().lower()
    if source not in SUPPORTED_SOURCES:
        raise ConfigurationError(
            f"Unsupported data source {raw!r}; expected one of: {', '.join(SUPPORTED_SOURCES)}"
        )
    return source


def parse_sections(raw: object) -> List[SectionConfig]:
    """Parse section definitions.

    Accepts either the env form ``"Core=core-*,dist-*;Edge=edge-*"`` or the YAML
    form ``[{"name": "Core", "patterns": ["core-*"]}, ...]``.
    """
    if raw is None:
        return []

    sections: List[SectionConfig] = []
    if isinstance(raw, str):
        for chunk in raw.split(";"):
            if not chunk.strip():
                continue
            name, sep, patterns = chunk.partition("=")
            if not sep or not name.strip():
                raise ConfigurationError(f"Invalid section definition {chunk.strip()!r} (expected Name=pattern,...)")
            sections.append(SectionConfig(name=name.strip(), patterns=tuple(parse_patterns(patterns))))
        return sections

    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                raise ConfigurationError("Each section must be a mapping with name and patterns")
            name = item.get("name")
            if not isinstance(name, str) or not name.strip():
                raise ConfigurationError("Each section needs a non-empty name")
            patterns = _parse_patterns(f"section {name!r} patterns", item.get("patterns"))
            sections.append(SectionConfig(name=name.strip(), patterns=tuple(patterns)))
        return sections

    raise ConfigurationError("sections must be a list of mappings or a 'Name=pattern;...' string")


def _read_secret_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    p = Path(path)
    if not p.is_file():
        logger.warning("Secret file %s does not exist", p)
        return None
    return p.read_text(encoding="utf-8").strip() or None


def _secret(value: object, file_path: object) -> Optional[str]:
    """Prefer an inline secret over a file-based one."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(file_path, str) and file_path.strip():
        return _read_secret_file(file_path.strip())
    return None


@dataclass
class SourceSettings:
    """Connection settings for one upstream system. Both may be unset for an inactive source."""

    url: Optional[str] = None
    token: Optional[str] = None


@dataclass
class Settings:
    data_source: str = "librenms"
    librenms: SourceSettings = field(default_factory=SourceSettings)
    netdisco: SourceSettings = field(default_factory=SourceSettings)
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    sections: List[SectionConfig] = field(default_factory=list)
    cache_ttl_seconds: int = int(DEFAULT_TTL_SECONDS)
    http_timeout: int = DEFAULT_TIMEOUT
    batch_size: int = DEFAULT_BATCH_SIZE
    verify_ssl: bool = True
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    force_refresh: bool = False

    @property
    def active_source(self) -> SourceSettings:
        return self.netdisco if self.data_source == "netdisco" else self.librenms


def _load_settings_from_yaml(path: str) -> Settings:
    """Load settings from a single YAML config file."""
    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"APP_CONFIG_FILE not found: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to read YAML config: {path}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError("YAML config root must be a mapping/object")

    def _section(key: str) -> dict:
        value = raw.get(key) or {}
        if not isinstance(value, dict):
            raise ConfigurationError(f"{key} must be a mapping/object")
        return value

    librenms = _section("librenms")
    netdisco = _section("netdisco")
    filters = _section("filters")
    runtime = _section("runtime")

    return Settings(
        data_source=_parse_data_source(raw.get("data_source")),
        librenms=SourceSettings(
            url=_normalize_url(librenms.get("url"), "librenms.url"),
            token=_secret(librenms.get("api_token"), librenms.get("api_token_file")),
        ),
        netdisco=SourceSettings(
            url=_normalize_url(netdisco.get("url"), "netdisco.url"),
            token=_secret(netdisco.get("api_key"), netdisco.get("api_key_file")),
        ),
        include_patterns=_parse_patterns("filters.include", filters.get("include")),
        exclude_patterns=_parse_patterns("filters.exclude", filters.get("exclude")),
        sections=parse_sections(raw.get("sections")),
        cache_ttl_seconds=_parse_int(
            "runtime.cache_ttl_seconds", runtime.get("cache_ttl_seconds"), int(DEFAULT_TTL_SECONDS)
        ),
        http_timeout=_parse_int("runtime.http_timeout", runtime.get("http_timeout"), DEFAULT_TIMEOUT),
        batch_size=_parse_int("runtime.batch_size", runtime.get("batch_size"), DEFAULT_BATCH_SIZE),
        verify_ssl=_parse_bool("runtime.verify_ssl", runtime.get("verify_ssl"), True),
        log_level=str(runtime.get("log_level", "INFO")),
        log_dir=Path(str(runtime["log_dir"])) if runtime.get("log_dir") else None,
        force_refresh=_parse_bool("runtime.force_refresh", runtime.get("force_refresh"), False),
    )


def _load_settings_from_env(env: Mapping[str, str]) -> Settings:
    return Settings(
        data_source=_parse_data_source(env.get("DATA_SOURCE")),
        librenms=SourceSettings(
            url=_normalize_url(env.get("LIBRENMS_URL"), "LIBRENMS_URL"),
            token=_secret(env.get("LIBRENMS_API_TOKEN"), env.get("LIBRENMS_API_TOKEN_FILE")),
        ),
        netdisco=SourceSettings(
            url=_normalize_url(env.get("NETDISCO_URL"), "NETDISCO_URL"),
            token=_secret(env.get("NETDISCO_API_KEY"), env.get("NETDISCO_API_KEY_FILE")),
        ),
        include_patterns=parse_patterns(env.get("DEVICE_INCLUDE_PATTERNS")),
        exclude_patterns=parse_patterns(env.get("DEVICE_EXCLUDE_PATTERNS")),
        sections=parse_sections(env.get("DEVICE_SECTIONS")),
        cache_ttl_seconds=_parse_int("CACHE_TTL_SECONDS", env.get("CACHE_TTL_SECONDS"), int(DEFAULT_TTL_SECONDS)),
        http_timeout=_parse_int("HTTP_TIMEOUT", env.get("HTTP_TIMEOUT"), DEFAULT_TIMEOUT),
        batch_size=_parse_int("NETDISCO_BATCH_SIZE", env.get("NETDISCO_BATCH_SIZE"), DEFAULT_BATCH_SIZE),
        verify_ssl=_parse_bool("VERIFY_SSL", env.get("VERIFY_SSL"), True),
        log_level=env.get("LOG_LEVEL", "INFO"),
        log_dir=Path(env["LOG_DIR"]) if env.get("LOG_DIR") else None,
        force_refresh=_parse_bool("FORCE_REFRESH", env.get("FORCE_REFRESH"), False),
    )


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from a YAML file (APP_CONFIG_FILE) or from environment variables.

    Missing URL/credentials are not checked here; the adapter for the active
    source refuses to build without them.
    """
    env = os.environ if env is None else env

    # YAML-first mode (single source of truth)
    app_config_file = env.get("APP_CONFIG_FILE")
    if app_config_file:
        return _load_settings_from_yaml(app_config_file)

    return _load_settings_from_env(env)
