"""Command line interface for pkgrel."""
