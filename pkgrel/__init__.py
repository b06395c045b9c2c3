"""pkgrel: release orchestration for packages sharing one repository."""

__version__ = "0.3.0"
