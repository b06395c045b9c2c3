from __future__ import annotations

from pkgrel.core.config import BuildProfile, PackageKind

# Checked in this order when a package's kind is inferred.
MANIFEST_FILES: dict[PackageKind, str] = {
    "cargo": "Cargo.toml",
    "npm": "package.json",
}

TOKEN_ENV_BY_KIND: dict[PackageKind, str] = {
    "cargo": "CARGO_REGISTRY_TOKEN",
    "npm": "NPM_TOKEN",
}

DEFAULT_PROFILES_BY_KIND: dict[PackageKind, tuple[BuildProfile, ...]] = {
    "cargo": ("native", "sbf", "wasm"),
    # npm packages only have a native build.
    "npm": ("native",),
}

CRATES_IO_API = "https://crates.io/api/v1/crates"
NPM_REGISTRY = "https://registry.npmjs.org"

WASM_TARGET = "wasm32-unknown-unknown"

# Directories never scanned when discovering packages.
DISCOVERY_SKIP_DIRS = frozenset({"node_modules", "target", "dist"})
