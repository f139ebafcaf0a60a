"""Application configuration and defaults."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from helm_updater.errors import ConfigError
from helm_updater.models import BumpKind, UpdateStrategy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = (".helm-updater.yml", ".helm-updater.yaml")

_VALID_LOG_LEVELS = ("debug", "info", "warn", "warning", "error")
_GROUP_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_ENV_REF_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class RegistryCredential:
    registry: str
    password: str
    username: str = ""
    auth_type: str = "basic"  # "basic" or "bearer"

    @classmethod
    def from_dict(cls, d: dict) -> RegistryCredential:
        return cls(
            registry=str(d.get("registry", "")),
            password=_expand_env(str(d.get("password", "") or "")),
            username=_expand_env(str(d.get("username", "") or "")),
            auth_type=str(d.get("auth-type", d.get("authType", "basic")) or "basic"),
        )


@dataclass(frozen=True)
class IgnoreRule:
    dependency_name: str
    versions: tuple[str, ...] = ()
    update_types: tuple[BumpKind, ...] = ()

    @property
    def ignores_everything(self) -> bool:
        return not self.versions and not self.update_types

    @classmethod
    def from_dict(cls, d: dict) -> IgnoreRule:
        return cls(
            dependency_name=str(d.get("dependency-name", d.get("dependencyName", "")) or ""),
            versions=tuple(str(v) for v in _as_list(d.get("versions"))),
            update_types=tuple(
                BumpKind.from_str(str(t)) for t in _as_list(d.get("update-types", d.get("updateTypes")))
            ),
        )


@dataclass(frozen=True)
class GroupRule:
    name: str
    patterns: tuple[str, ...]
    update_types: tuple[BumpKind, ...] | None = None

    @classmethod
    def from_dict(cls, name: str, d: dict) -> GroupRule:
        raw_types = d.get("update-types", d.get("updateTypes"))
        return cls(
            name=name,
            patterns=tuple(str(p) for p in _as_list(d.get("patterns"))),
            update_types=(
                tuple(BumpKind.from_str(str(t)) for t in _as_list(raw_types))
                if raw_types is not None
                else None
            ),
        )


@dataclass
class Settings:
    include_paths: list[str] = field(default_factory=lambda: ["**/*.yaml", "**/*.yml"])
    exclude_paths: list[str] = field(default_factory=list)
    update_strategy: UpdateStrategy = UpdateStrategy.ALL
    registry_credentials: list[RegistryCredential] = field(default_factory=list)
    ignore: list[IgnoreRule] = field(default_factory=list)
    groups: list[GroupRule] = field(default_factory=list)
    cache_ttl: float = 3600.0
    fetch_timeout: float = 30.0
    max_concurrency: int = 5
    log_level: str = "info"

    def validate(self) -> None:
        """Raise ConfigError listing every problem found."""
        errors: list[str] = []

        if not self.include_paths:
            errors.append("include-paths must not be empty")
        for kind, patterns in (("include", self.include_paths), ("exclude", self.exclude_paths)):
            for pattern in patterns:
                if not pattern or not pattern.strip():
                    errors.append(f"Invalid {kind} pattern: empty string")
                elif "\\" in pattern:
                    errors.append(
                        f'Invalid {kind} pattern "{pattern}": use forward slashes (/) instead of backslashes (\\)'
                    )
                elif pattern.startswith("/"):
                    errors.append(
                        f'Invalid {kind} pattern "{pattern}": patterns should be relative, not absolute paths'
                    )

        for cred in self.registry_credentials:
            if not cred.registry or not cred.password:
                errors.append("Registry credentials must include registry and password")
            if cred.auth_type not in ("basic", "bearer"):
                errors.append(f"Invalid auth-type for {cred.registry}: {cred.auth_type}. Must be basic or bearer")
            elif cred.auth_type == "basic" and not cred.username:
                errors.append(f"Registry credential for {cred.registry} uses basic auth but has no username")

        for rule in self.ignore:
            if not rule.dependency_name:
                errors.append("Ignore rule must include dependency-name")
            if any(not v.strip() for v in rule.versions):
                errors.append("Ignore rule version patterns must not be empty strings")

        seen: set[str] = set()
        for group in self.groups:
            if not _GROUP_NAME_RE.match(group.name):
                errors.append(
                    f'Invalid group name "{group.name}": must contain only alphanumeric characters, '
                    "hyphens, and underscores"
                )
            if group.name in seen:
                errors.append(f'Duplicate dependency group "{group.name}"')
            seen.add(group.name)
            if not group.patterns:
                errors.append(f'Dependency group "{group.name}" must have at least one pattern')
            elif any(not p.strip() for p in group.patterns):
                errors.append(f'Dependency group "{group.name}" contains empty pattern')

        if self.cache_ttl < 0:
            errors.append("cache-ttl must be a non-negative number of seconds")
        if self.fetch_timeout <= 0:
            errors.append("fetch-timeout must be a positive number of seconds")
        if self.max_concurrency < 1:
            errors.append("max-concurrency must be at least 1")
        if self.log_level not in _VALID_LOG_LEVELS:
            errors.append(f"Invalid log-level: {self.log_level}. Must be one of: debug, info, warn, error")

        if errors:
            raise ConfigError(errors)

    @property
    def logging_level(self) -> int:
        level = "warning" if self.log_level == "warn" else self.log_level
        return getattr(logging, level.upper(), logging.INFO)


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value)


def _expand_env(value: str) -> str:
    """Expand ${VAR} references so secrets can stay out of the config file."""
    return _ENV_REF_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)


def settings_from_dict(data: dict) -> Settings:
    """Build Settings from a parsed config document, keeping defaults for missing keys."""
    s = Settings()
    errors: list[str] = []

    if "include-paths" in data:
        s.include_paths = [str(p) for p in _as_list(data["include-paths"])]
    if "exclude-paths" in data:
        s.exclude_paths = [str(p) for p in _as_list(data["exclude-paths"])]
    if "update-strategy" in data:
        try:
            s.update_strategy = UpdateStrategy.from_str(str(data["update-strategy"]))
        except ValueError:
            errors.append(
                f"Invalid update-strategy: {data['update-strategy']}. Must be one of: major, minor, patch, all"
            )
    for key, attr, cast in (
        ("cache-ttl", "cache_ttl", float),
        ("fetch-timeout", "fetch_timeout", float),
        ("max-concurrency", "max_concurrency", int),
    ):
        if key in data:
            try:
                setattr(s, attr, cast(data[key]))
            except (TypeError, ValueError):
                errors.append(f"{key} must be a number, got {data[key]!r}")
    if "log-level" in data:
        s.log_level = str(data["log-level"]).lower()

    try:
        s.registry_credentials = [
            RegistryCredential.from_dict(c) for c in data.get("registry-credentials") or []
        ]
        s.ignore = [IgnoreRule.from_dict(r) for r in data.get("ignore") or []]
        s.groups = [GroupRule.from_dict(name, g or {}) for name, g in (data.get("groups") or {}).items()]
    except (AttributeError, TypeError) as exc:
        errors.append(f"Malformed rule section: {exc}")
    except ValueError as exc:
        errors.append(str(exc))

    if errors:
        raise ConfigError(errors)
    return s


def _apply_env_overrides(s: Settings) -> None:
    strategy = os.environ.get("HELM_UPDATER_STRATEGY", "")
    if strategy:
        try:
            s.update_strategy = UpdateStrategy.from_str(strategy)
        except ValueError:
            raise ConfigError([f"Invalid HELM_UPDATER_STRATEGY: {strategy}"])
    ttl = os.environ.get("HELM_UPDATER_CACHE_TTL", "")
    if ttl:
        try:
            s.cache_ttl = float(ttl)
        except ValueError:
            raise ConfigError([f"Invalid HELM_UPDATER_CACHE_TTL: {ttl}"])
    level = os.environ.get("HELM_UPDATER_LOG_LEVEL", "")
    if level:
        s.log_level = level.lower()


def load_settings(config_file: Path | None = None, root: Path | None = None) -> Settings:
    """Load settings from a YAML config file (if any), then the environment.

    Without an explicit file, `.helm-updater.yml` / `.helm-updater.yaml`
    under `root` are tried in that order.
    """
    path = config_file
    if path is None:
        base = root or Path.cwd()
        path = next((base / name for name in DEFAULT_CONFIG_FILES if (base / name).exists()), None)

    data: dict = {}
    if path is not None:
        if not path.exists():
            raise ConfigError([f"Config file not found: {path}"])
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError([f"Failed to parse {path}: {exc}"]) from exc
        if not isinstance(data, dict):
            raise ConfigError([f"Config file {path} must contain a mapping"])
        logger.debug("Loaded configuration from %s", path)

    s = settings_from_dict(data)
    _apply_env_overrides(s)
    s.validate()
    return s
