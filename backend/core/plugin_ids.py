"""Mapping between plugin names and their npm package names."""
from typing import Optional

from config import settings


def to_package_name(name: str, prefix: Optional[str] = None) -> str:
    """Return the npm package name for a plugin ("foo" -> "gitbook-plugin-foo")."""
    prefix = settings.plugin_prefix if prefix is None else prefix
    if name.startswith(prefix):
        return name
    return prefix + name


def to_plugin_name(package_name: str, prefix: Optional[str] = None) -> str:
    """Return the plugin name for an npm package name.

    The first occurrence of the prefix is removed wherever it appears, not
    only at the start of the string.
    """
    prefix = settings.plugin_prefix if prefix is None else prefix
    return package_name.replace(prefix, "", 1)


def is_plugin_package(name: Optional[str], prefix: Optional[str] = None) -> bool:
    """Check whether an npm package name belongs to the plugin namespace."""
    prefix = settings.plugin_prefix if prefix is None else prefix
    return bool(name) and name.startswith(prefix)
