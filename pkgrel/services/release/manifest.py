"""Read and write the version field of package manifests.

Cargo.toml is edited textually inside its [package] table so comments and
formatting survive; package.json is rewritten with two-space indentation.
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path

from pkgrel.core.config import PackageKind
from pkgrel.core.result import Err, Ok, Result
from pkgrel.core.structured import StrDict, as_str_dict, get_str, get_table
from pkgrel.platform.files import atomic_write_text
from pkgrel.release.errors import ReleaseError

_TABLE_HEADER_RE = re.compile(r"(?m)^\s*\[")
_PACKAGE_HEADER_RE = re.compile(r"(?m)^\s*\[package\]\s*(?:#.*)?$")
_VERSION_LINE_RE = re.compile(r'(?m)^(\s*version\s*=\s*)"([^"]+)"')


@dataclass(frozen=True, slots=True)
class ManifestInfo:
    name: str
    version: str


def read_manifest(path: Path, kind: PackageKind) -> Result[ManifestInfo, ReleaseError]:
    """Read the package name and current version."""
    if kind == "cargo":
        return _read_cargo(path)
    return _read_package_json(path)


def write_manifest_version(path: Path, kind: PackageKind, version: str) -> Result[bool, ReleaseError]:
    """Set the manifest version.

    Returns:
        Ok(True) if the file changed, Ok(False) if it already had the version.
    """
    if kind == "cargo":
        return _write_cargo_version(path, version)
    return _write_package_json_version(path, version)


def _read_text(path: Path) -> Result[str, ReleaseError]:
    try:
        return Ok(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="invalid_manifest",
                message=f"failed to read {path.name}: {e}",
                hint=str(path),
            )
        )


def _write_text(path: Path, text: str) -> Result[None, ReleaseError]:
    try:
        atomic_write_text(path, text)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="invalid_manifest",
                message=f"failed to write {path.name}: {e}",
                hint=str(path),
            )
        )
    return Ok(None)


def _invalid(path: Path, message: str) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="invalid_manifest", message=message, hint=str(path)))


def _read_cargo(path: Path) -> Result[ManifestInfo, ReleaseError]:
    text = _read_text(path)
    if isinstance(text, Err):
        return text

    try:
        data: StrDict = tomllib.loads(text.value)
    except tomllib.TOMLDecodeError as e:
        return _invalid(path, f"invalid TOML in Cargo.toml: {e}")

    package = get_table(data, "package")
    if package is None:
        return _invalid(path, "missing [package] section in Cargo.toml")

    name = get_str(package, "name")
    if name is None:
        return _invalid(path, "missing package name in Cargo.toml")

    if get_table(package, "version") is not None:
        return _invalid(path, "workspace-inherited package versions are not supported")
    version = get_str(package, "version")
    if version is None:
        return _invalid(path, "missing package version in Cargo.toml")

    return Ok(ManifestInfo(name=name, version=version))


def _package_section(text: str) -> tuple[int, int] | None:
    header = _PACKAGE_HEADER_RE.search(text)
    if header is None:
        return None
    nxt = _TABLE_HEADER_RE.search(text, header.end())
    return (header.end(), nxt.start() if nxt is not None else len(text))


def _write_cargo_version(path: Path, version: str) -> Result[bool, ReleaseError]:
    text = _read_text(path)
    if isinstance(text, Err):
        return text
    content = text.value

    section = _package_section(content)
    if section is None:
        return _invalid(path, "missing [package] section in Cargo.toml")
    start, end = section

    m = _VERSION_LINE_RE.search(content, start, end)
    if m is None:
        return _invalid(path, "missing package version in Cargo.toml")

    if m.group(2) == version:
        return Ok(False)

    out = content[: m.start()] + f'{m.group(1)}"{version}"' + content[m.end() :]
    written = _write_text(path, out)
    if isinstance(written, Err):
        return written
    return Ok(True)


def _load_package_json(path: Path) -> Result[StrDict, ReleaseError]:
    text = _read_text(path)
    if isinstance(text, Err):
        return text

    try:
        obj: object = json.loads(text.value)
    except json.JSONDecodeError as e:
        return _invalid(path, f"invalid JSON in {path.name}: {e}")

    data = as_str_dict(obj)
    if data is None:
        return _invalid(path, f"invalid JSON root in {path.name}")
    return Ok(data)


def _read_package_json(path: Path) -> Result[ManifestInfo, ReleaseError]:
    data = _load_package_json(path)
    if isinstance(data, Err):
        return data

    name = get_str(data.value, "name")
    if name is None:
        return _invalid(path, f"missing name in {path.name}")
    version = get_str(data.value, "version")
    if version is None:
        return _invalid(path, f"missing version in {path.name}")
    return Ok(ManifestInfo(name=name, version=version))


def _write_package_json_version(path: Path, version: str) -> Result[bool, ReleaseError]:
    data = _load_package_json(path)
    if isinstance(data, Err):
        return data

    if get_str(data.value, "version") == version:
        return Ok(False)

    data.value["version"] = version
    written = _write_text(path, json.dumps(data.value, indent=2, ensure_ascii=False) + "\n")
    if isinstance(written, Err):
        return written
    return Ok(True)
