"""Typed run configuration.

Configuration is read once at the start of a run from ``autorel.toml`` plus a
few secrets taken from the environment, then passed explicitly to each
component. Nothing reads the environment after this point.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_float,
    get_int,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "AssetsConfig",
    "Config",
    "ConfigError",
    "DEFAULT_CONFIG_FILE",
    "NotifyConfig",
    "ProjectConfig",
    "ReasoningConfig",
    "StagesConfig",
    "VersionFileConfig",
    "load_config",
]

DEFAULT_CONFIG_FILE = "autorel.toml"

DEFAULT_VERSION_PATTERN = r'version\s*[:=]\s*"([^"]+)"'
DEFAULT_REASONING_ENDPOINT = "https://api.anthropic.com/v1/messages"
DEFAULT_REASONING_MODEL = "claude-3-5-sonnet-latest"

# Environment variables holding secrets injected by the CI runner.
ENV_API_KEY = "ANTHROPIC_API_KEY"
ENV_WEBHOOK_URLS = ("AUTOREL_WEBHOOK_URL", "SLACK_WEBHOOK")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    name: str = "project"
    repo: str | None = None  # owner/name on the hosting service
    trunk_branch: str = "main"
    remote: str = "origin"
    tag_prefix: str = ""
    # Appended to tags as "+<build_metadata>", e.g. "lua5.4.8".
    build_metadata: str | None = None
    baseline_version: str = "0.0.0"
    source_paths: tuple[str, ...] = ("src/", "Sources/")
    notes_dir: str = ".autorel/notes"
    artifacts_dir: str = ".autorel/dist"


@dataclass(frozen=True, slots=True)
class VersionFileConfig:
    """Tracked asset carrying the embedded version string."""

    path: str | None = None
    pattern: str = DEFAULT_VERSION_PATTERN


@dataclass(frozen=True, slots=True)
class StagesConfig:
    """Commands for the externally-owned gate stages (empty = not configured)."""

    build_test: tuple[str, ...] = ()
    lint: tuple[str, ...] = ()
    security: tuple[str, ...] = ()
    coverage: tuple[str, ...] = ()
    coverage_report: str | None = None
    timeout_seconds: float = 30 * 60.0


@dataclass(frozen=True, slots=True)
class AssetsConfig:
    binary_dir: str | None = None
    platform: str | None = None


@dataclass(frozen=True, slots=True)
class ReasoningConfig:
    enabled: bool = True
    endpoint: str = DEFAULT_REASONING_ENDPOINT
    model: str = DEFAULT_REASONING_MODEL
    max_tokens: int = 1000
    notes_max_tokens: int = 4000
    timeout_seconds: float = 60.0
    api_key: str | None = field(default=None, repr=False)

    @property
    def available(self) -> bool:
        return self.enabled and bool(self.api_key)


@dataclass(frozen=True, slots=True)
class NotifyConfig:
    webhook_url: str | None = field(default=None, repr=False)
    timeout_seconds: float = 10.0


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    version_file: VersionFileConfig = field(default_factory=VersionFileConfig)
    stages: StagesConfig = field(default_factory=StagesConfig)
    assets: AssetsConfig = field(default_factory=AssetsConfig)
    reasoning: ReasoningConfig = field(default_factory=ReasoningConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, object],
        env: Mapping[str, str] | None = None,
    ) -> Config:
        """Create Config from parsed TOML and the process environment."""
        env = env or {}
        project: StrDict = get_table(data, "project") or {}
        version_file: StrDict = get_table(data, "version_file") or {}
        stages: StrDict = get_table(data, "stages") or {}
        assets: StrDict = get_table(data, "assets") or {}
        reasoning: StrDict = get_table(data, "reasoning") or {}
        notify: StrDict = get_table(data, "notify") or {}

        source_paths = get_str_list(project, "source_paths")
        enabled = get_bool(reasoning, "enabled")
        webhook = get_str(notify, "webhook_url") or _first_env(env, ENV_WEBHOOK_URLS)

        return cls(
            project=ProjectConfig(
                name=get_str(project, "name") or "project",
                repo=get_str(project, "repo"),
                trunk_branch=get_str(project, "trunk_branch") or "main",
                remote=get_str(project, "remote") or "origin",
                tag_prefix=_raw_str(project, "tag_prefix") or "",
                build_metadata=get_str(project, "build_metadata"),
                baseline_version=get_str(project, "baseline_version") or "0.0.0",
                source_paths=(
                    tuple(source_paths) if source_paths is not None else ("src/", "Sources/")
                ),
                notes_dir=get_str(project, "notes_dir") or ".autorel/notes",
                artifacts_dir=get_str(project, "artifacts_dir") or ".autorel/dist",
            ),
            version_file=VersionFileConfig(
                path=get_str(version_file, "path"),
                pattern=get_str(version_file, "pattern") or DEFAULT_VERSION_PATTERN,
            ),
            stages=StagesConfig(
                build_test=_command(stages, "build_test"),
                lint=_command(stages, "lint"),
                security=_command(stages, "security"),
                coverage=_command(stages, "coverage"),
                coverage_report=get_str(stages, "coverage_report"),
                timeout_seconds=get_float(stages, "timeout_seconds") or 30 * 60.0,
            ),
            assets=AssetsConfig(
                binary_dir=get_str(assets, "binary_dir"),
                platform=get_str(assets, "platform"),
            ),
            reasoning=ReasoningConfig(
                enabled=True if enabled is None else enabled,
                endpoint=get_str(reasoning, "endpoint") or DEFAULT_REASONING_ENDPOINT,
                model=get_str(reasoning, "model") or DEFAULT_REASONING_MODEL,
                max_tokens=get_int(reasoning, "max_tokens") or 1000,
                notes_max_tokens=get_int(reasoning, "notes_max_tokens") or 4000,
                timeout_seconds=get_float(reasoning, "timeout_seconds") or 60.0,
                api_key=env.get(ENV_API_KEY) or None,
            ),
            notify=NotifyConfig(
                webhook_url=webhook,
                timeout_seconds=get_float(notify, "timeout_seconds") or 10.0,
            ),
        )


def _raw_str(table: Mapping[str, object], key: str) -> str | None:
    # Prefixes like "v" are kept verbatim (no stripping).
    value = table.get(key)
    return value if isinstance(value, str) else None


def _first_env(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = env.get(name, "").strip()
        if value:
            return value
    return None


def _command(table: Mapping[str, object], key: str) -> tuple[str, ...]:
    """Read a command as an argv list, or as a shell-quoted string."""
    argv = get_str_list(table, key)
    if argv is not None:
        return tuple(argv)
    line = get_str(table, key)
    if line is None:
        return ()
    return tuple(shlex.split(line))


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def _validate(config: Config, path: Path) -> Result[Config, ConfigError]:
    try:
        compiled = re.compile(config.version_file.pattern)
    except re.error as e:
        return Err(ConfigError(f"Invalid version_file.pattern: {e}", path=path))
    if compiled.groups < 1:
        return Err(
            ConfigError("version_file.pattern must capture the version in a group", path=path)
        )
    repo = config.project.repo
    if repo is not None and repo.count("/") != 1:
        return Err(ConfigError(f"project.repo must be owner/name, got: {repo}", path=path))
    return Ok(config)


def load_config(path: Path, env: Mapping[str, str] | None = None) -> Result[Config, ConfigError]:
    """Load configuration from a TOML file.

    A missing file yields the defaults; an unreadable or invalid one is an error.

    Args:
        path: Path to autorel.toml
        env: Environment mapping providing secrets (usually os.environ)

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    if not path.exists():
        return _validate(Config.from_dict({}, env), path)

    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        config = Config.from_dict(result.value, env)
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
    return _validate(config, path)
