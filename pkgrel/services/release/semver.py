from __future__ import annotations

import re
from dataclasses import dataclass, replace

from pkgrel.core.result import Err, Ok, Result
from pkgrel.release.contracts import BumpLevel

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
_CHANNEL_RE = re.compile(r"^(alpha|beta|rc)\.(0|[1-9]\d*)$")

# Pre-release channels in release order.
_CHANNELS = ("alpha", "beta", "rc")


@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int
    patch: int
    pre: str = ""
    build: str = ""

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    def core(self) -> Version:
        """The version without pre-release or build metadata."""
        return Version(self.major, self.minor, self.patch)

    def __str__(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            out += f"-{self.pre}"
        if self.build:
            out += f"+{self.build}"
        return out


def parse_version(text: str) -> Version | None:
    m = _SEMVER_RE.match(text.strip())
    if m is None:
        return None
    return Version(
        major=int(m.group(1)),
        minor=int(m.group(2)),
        patch=int(m.group(3)),
        pre=m.group(4) or "",
        build=m.group(5) or "",
    )


def _parse_channel(pre: str) -> tuple[str, int] | None:
    m = _CHANNEL_RE.match(pre)
    if m is None:
        return None
    return (m.group(1), int(m.group(2)))


def _bump_channel(version: Version, channel: str) -> Result[Version, str]:
    if not version.is_prerelease:
        base = Version(version.major, version.minor, version.patch + 1)
        return Ok(replace(base, pre=f"{channel}.1"))

    current = _parse_channel(version.pre)
    if current is None:
        return Err(f"cannot bump {channel} from pre-release '{version.pre}'")

    cur_channel, n = current
    if cur_channel == channel:
        return Ok(replace(version.core(), pre=f"{channel}.{n + 1}"))
    if _CHANNELS.index(channel) < _CHANNELS.index(cur_channel):
        return Err(f"cannot go back from {cur_channel} to {channel} ({version})")
    return Ok(replace(version.core(), pre=f"{channel}.1"))


def bump_version(version: Version, level: BumpLevel) -> Result[Version, str]:
    """Compute the next version for a bump level.

    Pre-release handling: patch and release finish a pre-release instead of
    moving past it; alpha/beta/rc start at .1 on the next patch of a stable
    version and only move forward through alpha -> beta -> rc.
    """
    match level:
        case "major":
            return Ok(Version(version.major + 1, 0, 0))
        case "minor":
            return Ok(Version(version.major, version.minor + 1, 0))
        case "patch":
            if version.is_prerelease:
                return Ok(version.core())
            return Ok(Version(version.major, version.minor, version.patch + 1))
        case "release":
            if not version.is_prerelease:
                return Err(f"{version} is not a pre-release; nothing to release")
            return Ok(version.core())
        case "alpha" | "beta" | "rc":
            return _bump_channel(version, level)
        case "version":
            return Err("explicit versions are not computed from a bump")
        case _:
            raise AssertionError(f"unexpected bump level: {level}")


def crosses_major(previous: Version, new: Version) -> bool:
    """True when new is allowed to break previous's API under semver.

    For 0.x versions the minor component carries compatibility.
    """
    if new.major != previous.major:
        return new.major > previous.major
    if new.major == 0:
        return new.minor > previous.minor
    return False
