"""The repository's closed set of releasable packages."""

from __future__ import annotations

import json
from pathlib import Path

from pkgrel.core.config import PackageConfig, PackageKind, ReleaseConfig
from pkgrel.core.result import Err, Ok, Result
from pkgrel.core.structured import as_str_dict
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.config import (
    DEFAULT_PROFILES_BY_KIND,
    DISCOVERY_SKIP_DIRS,
    MANIFEST_FILES,
    TOKEN_ENV_BY_KIND,
)
from pkgrel.services.release.manifest import read_manifest
from pkgrel.services.release.model import ReleasePackage

_DISCOVERY_DEPTH = 2


def _detect_kind(pkg_dir: Path) -> PackageKind | None:
    for kind, filename in MANIFEST_FILES.items():
        if (pkg_dir / filename).is_file():
            return kind
    return None


def _load_package(root: Path, entry: PackageConfig) -> Result[ReleasePackage, ReleaseError]:
    pkg_dir = root / entry.path
    kind = entry.kind or _detect_kind(pkg_dir)
    if kind is None:
        return Err(
            ReleaseError(
                kind="config_invalid",
                message=f"no Cargo.toml or package.json in {entry.path}",
                hint="Fix the [[packages]] path in release.toml.",
            )
        )

    profiles = entry.profiles or DEFAULT_PROFILES_BY_KIND[kind]
    if kind == "npm" and profiles != ("native",):
        return Err(
            ReleaseError(
                kind="config_invalid",
                message=f"npm package {entry.path} only supports the native profile",
            )
        )

    info = read_manifest(pkg_dir / MANIFEST_FILES[kind], kind)
    if isinstance(info, Err):
        return info

    return Ok(
        ReleasePackage(
            path=entry.path,
            name=info.value.name,
            kind=kind,
            profiles=profiles,
            token_env=entry.token_env or TOKEN_ENV_BY_KIND[kind],
        )
    )


def _is_private_npm_package(pkg_dir: Path) -> bool:
    try:
        obj: object = json.loads((pkg_dir / "package.json").read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return True
    data = as_str_dict(obj)
    return data is None or data.get("private") is True


def _candidate_dirs(root: Path) -> list[Path]:
    found: list[Path] = []
    frontier = [root]
    for _ in range(_DISCOVERY_DEPTH):
        nxt: list[Path] = []
        for base in frontier:
            for child in sorted(base.iterdir()):
                if not child.is_dir() or child.name.startswith("."):
                    continue
                if child.name in DISCOVERY_SKIP_DIRS:
                    continue
                nxt.append(child)
        found.extend(nxt)
        frontier = nxt
    return found


def discover_packages(root: Path) -> tuple[ReleasePackage, ...]:
    """Find packages when release.toml does not list them.

    A directory qualifies if it holds a Cargo.toml with a [package] table or a
    non-private package.json. Unreadable manifests are not packages.
    """
    out: list[ReleasePackage] = []
    for pkg_dir in _candidate_dirs(root):
        kind = _detect_kind(pkg_dir)
        if kind is None:
            continue
        if kind == "npm" and _is_private_npm_package(pkg_dir):
            continue
        rel = pkg_dir.relative_to(root).as_posix()
        loaded = _load_package(root, PackageConfig(path=rel, kind=kind))
        if isinstance(loaded, Ok):
            out.append(loaded.value)
    return tuple(sorted(out, key=lambda p: p.path))


def known_packages(root: Path, config: ReleaseConfig) -> Result[tuple[ReleasePackage, ...], ReleaseError]:
    if not config.packages:
        return Ok(discover_packages(root))

    out: list[ReleasePackage] = []
    for entry in config.packages:
        loaded = _load_package(root, entry)
        if isinstance(loaded, Err):
            return loaded
        out.append(loaded.value)
    return Ok(tuple(out))


def find_package(packages: tuple[ReleasePackage, ...], ident: str) -> Result[ReleasePackage, ReleaseError]:
    """Select a package by path (or, for convenience, by registry name)."""
    wanted = ident.strip().strip("/")
    for p in packages:
        if p.path == wanted:
            return Ok(p)
    for p in packages:
        if p.name == wanted:
            return Ok(p)

    available = ", ".join(p.path for p in packages) or "(none)"
    return Err(
        ReleaseError(
            kind="unknown_package",
            message=f"unknown package: {ident}",
            hint=f"Available: {available}",
        )
    )
