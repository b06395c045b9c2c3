"""Typed loading of the repository's release.toml.

The file is optional. When present it declares the closed set of releasable
packages and the repository-wide release settings; when absent the package set
is discovered from the tree (see `pkgrel.services.release.packages`).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, cast

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_list, get_str, get_str_list, get_table

__all__ = [
    "BUILD_PROFILES",
    "CONFIG_FILE_NAME",
    "DEFAULT_COMMIT_MESSAGE",
    "DEFAULT_TAG_TEMPLATE",
    "PACKAGE_KINDS",
    "BuildProfile",
    "ConfigError",
    "GitIdentity",
    "PackageConfig",
    "PackageKind",
    "ReleaseConfig",
    "load_config",
    "load_repo_config",
    "parse_config",
]

CONFIG_FILE_NAME = "release.toml"

DEFAULT_TAG_TEMPLATE = "{name}@v{version}"
DEFAULT_COMMIT_MESSAGE = "Publish {name} v{version}"
DEFAULT_REMOTE = "origin"

PackageKind = Literal["cargo", "npm"]
BuildProfile = Literal["native", "sbf", "wasm"]

PACKAGE_KINDS: tuple[PackageKind, ...] = ("cargo", "npm")
BUILD_PROFILES: tuple[BuildProfile, ...] = ("native", "sbf", "wasm")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when release.toml cannot be loaded or validated."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PackageConfig:
    """One [[packages]] entry.

    Attributes:
        path: Package directory relative to the repository root.
        kind: Manifest/registry flavour, inferred from the tree when omitted.
        profiles: Build profiles the package must pass; None means the
            default set for its kind.
        token_env: Registry credential variable overriding the kind default.
    """

    path: str
    kind: PackageKind | None = None
    profiles: tuple[BuildProfile, ...] | None = None
    token_env: str | None = None


@dataclass(frozen=True, slots=True)
class GitIdentity:
    name: str
    email: str


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Repository-wide release settings."""

    packages: tuple[PackageConfig, ...] = ()
    tag_template: str = DEFAULT_TAG_TEMPLATE
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    github_repo: str | None = None
    remote: str = DEFAULT_REMOTE
    allow_breaking_on_major: bool = False
    git_identity: GitIdentity | None = None
    source: Path | None = None

    def format_tag(self, *, name: str, version: str) -> str:
        return self.tag_template.format(name=name, version=version)

    def format_commit_message(self, *, name: str, version: str) -> str:
        return self.commit_message.format(name=name, version=version)


def _parse_package(entry: object, index: int, path: Path | None) -> Result[PackageConfig, ConfigError]:
    table = as_str_dict(entry)
    if table is None:
        return Err(ConfigError(f"packages[{index}] must be a table", path=path))

    pkg_path = get_str(table, "path")
    if pkg_path is None:
        return Err(ConfigError(f"packages[{index}].path is required", path=path))
    pkg_path = pkg_path.strip("/")

    kind_raw = get_str(table, "kind")
    if kind_raw is not None and kind_raw not in PACKAGE_KINDS:
        return Err(
            ConfigError(
                f"packages[{index}].kind must be one of {', '.join(PACKAGE_KINDS)}: {kind_raw}",
                path=path,
            )
        )

    profiles: tuple[BuildProfile, ...] | None = None
    if "profiles" in table:
        raw = get_str_list(table, "profiles")
        if raw is None or not raw:
            return Err(ConfigError(f"packages[{index}].profiles must be a list of names", path=path))
        unknown = [p for p in raw if p not in BUILD_PROFILES]
        if unknown:
            return Err(
                ConfigError(
                    f"packages[{index}].profiles has unknown profile(s): {', '.join(unknown)}",
                    path=path,
                )
            )
        profiles = tuple(cast(BuildProfile, p) for p in raw)

    return Ok(
        PackageConfig(
            path=pkg_path,
            kind=cast(PackageKind, kind_raw) if kind_raw is not None else None,
            profiles=profiles,
            token_env=get_str(table, "token_env"),
        )
    )


def _check_template(key: str, template: str, path: Path | None) -> Result[str, ConfigError]:
    """Format once with sample values so unknown placeholders fail at load time."""
    try:
        template.format(name="example", version="0.0.0")
    except (KeyError, IndexError, ValueError) as e:
        return Err(
            ConfigError(f"release.{key} is not a valid template ({e!r}); use {{name}} and {{version}}", path=path)
        )
    return Ok(template)


def parse_config(data: Mapping[str, object], path: Path | None = None) -> Result[ReleaseConfig, ConfigError]:
    """Validate a parsed release.toml mapping."""
    release: StrDict = get_table(data, "release") or {}
    git: StrDict = get_table(data, "git") or {}

    packages: list[PackageConfig] = []
    seen: set[str] = set()
    for i, entry in enumerate(get_list(data, "packages") or []):
        parsed = _parse_package(entry, i, path)
        if isinstance(parsed, Err):
            return parsed
        if parsed.value.path in seen:
            return Err(ConfigError(f"duplicate package path: {parsed.value.path}", path=path))
        seen.add(parsed.value.path)
        packages.append(parsed.value)

    tag_template = get_str(release, "tag_template") or DEFAULT_TAG_TEMPLATE
    if "{version}" not in tag_template:
        return Err(ConfigError("release.tag_template must contain {version}", path=path))
    checked_tag = _check_template("tag_template", tag_template, path)
    if isinstance(checked_tag, Err):
        return checked_tag

    commit_message = get_str(release, "commit_message") or DEFAULT_COMMIT_MESSAGE
    checked_message = _check_template("commit_message", commit_message, path)
    if isinstance(checked_message, Err):
        return checked_message

    identity: GitIdentity | None = None
    author_name = get_str(git, "author_name")
    author_email = get_str(git, "author_email")
    if (author_name is None) != (author_email is None):
        return Err(ConfigError("git.author_name and git.author_email go together", path=path))
    if author_name is not None and author_email is not None:
        identity = GitIdentity(name=author_name, email=author_email)

    return Ok(
        ReleaseConfig(
            packages=tuple(packages),
            tag_template=tag_template,
            commit_message=commit_message,
            github_repo=get_str(release, "github_repo"),
            remote=get_str(release, "remote") or DEFAULT_REMOTE,
            allow_breaking_on_major=bool(get_bool(release, "allow_breaking_on_major")),
            git_identity=identity,
            source=path,
        )
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and validate a release.toml file.

    Args:
        path: Path to the file.

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure.
    """
    data = _parse_toml(path)
    if isinstance(data, Err):
        return data
    return parse_config(data.value, path)


def load_repo_config(root: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load `<root>/release.toml`, falling back to defaults when it is absent."""
    path = root / CONFIG_FILE_NAME
    if not path.exists():
        return Ok(ReleaseConfig())
    return load_config(path)
