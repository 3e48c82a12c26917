"""Installed package tree and plugin discovery.

read_installed() turns a folder and its nested node_modules directories into
a PackageTree: a flat list of nodes, root first, where each node keeps the
indices of its children in directory order. scan_tree() walks that tree and
collects the plugins it contains.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from core.exceptions import TreeReadError
from core.plugin_ids import is_plugin_package, to_plugin_name

logger = logging.getLogger(__name__)


@dataclass
class PackageNode:
    """One installed package."""
    name: str
    version: str
    real_path: str
    depth: int
    children: list[int] = field(default_factory=list)


@dataclass
class PackageTree:
    """Installed packages under a folder. nodes[0] is the folder itself."""
    nodes: list[PackageNode] = field(default_factory=list)

    @property
    def root(self) -> PackageNode:
        return self.nodes[0]

    def add(self, node: PackageNode, parent: Optional[int] = None) -> int:
        self.nodes.append(node)
        index = len(self.nodes) - 1
        if parent is not None:
            self.nodes[parent].children.append(index)
        return index


@dataclass
class InstalledPlugin:
    """A plugin found installed on disk."""
    name: str
    version: str
    path: str
    depth: int


def _read_package_json(package_dir: Path) -> Optional[dict]:
    """Load package.json from a package directory, None if there is none."""
    manifest = package_dir / "package.json"
    if not manifest.is_file():
        return None
    try:
        with open(manifest, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise TreeReadError(f"Failed to read {manifest}: {e}", path=str(manifest)) from e
    if not isinstance(data, dict):
        raise TreeReadError(f"Invalid package.json at {manifest}", path=str(manifest))
    for key in ("name", "version"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise TreeReadError(f"Invalid '{key}' in {manifest}: {data[key]!r}", path=str(manifest))
    return data


def _installed_dirs(package_dir: Path) -> list[Path]:
    """Package directories directly under package_dir/node_modules, sorted."""
    modules = package_dir / "node_modules"
    if not modules.is_dir():
        return []

    found = []
    try:
        for entry in sorted(modules.iterdir(), key=lambda p: p.name):
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            if entry.name.startswith("@"):
                # Scoped packages: node_modules/@scope/name
                found.extend(
                    sub for sub in sorted(entry.iterdir(), key=lambda p: p.name)
                    if sub.is_dir() and not sub.name.startswith(".")
                )
            else:
                found.append(entry)
    except OSError as e:
        raise TreeReadError(f"Failed to list {modules}: {e}", path=str(modules)) from e
    return found


def read_installed(folder: Path, max_depth: int = 4) -> PackageTree:
    """Read the tree of packages installed under folder.

    The folder itself may lack a package.json (a plain project directory).
    Directories under node_modules without one are not packages and are
    skipped. Packages nested deeper than max_depth are not read.
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise TreeReadError(f"Not a directory: {folder}", path=str(folder))

    tree = PackageTree()
    root_data = _read_package_json(folder) or {}
    tree.add(PackageNode(
        name=root_data.get("name") or "",
        version=root_data.get("version") or "",
        real_path=str(folder.resolve()),
        depth=0,
    ))

    stack = [(0, folder)]
    while stack:
        parent, parent_dir = stack.pop()
        depth = tree.nodes[parent].depth + 1
        if depth > max_depth:
            continue

        pending = []
        for package_dir in _installed_dirs(parent_dir):
            data = _read_package_json(package_dir)
            if data is None:
                logger.debug(f"Skipping {package_dir}: no package.json")
                continue
            index = tree.add(PackageNode(
                name=data.get("name") or package_dir.name,
                version=data.get("version") or "",
                real_path=str(package_dir.resolve()),
                depth=depth,
            ), parent=parent)
            pending.append((index, package_dir))
        stack.extend(reversed(pending))

    return tree


def unique_by_name(plugins: Iterable[InstalledPlugin]) -> list[InstalledPlugin]:
    """Drop plugins whose name was already seen. The first occurrence wins."""
    seen = set()
    result = []
    for plugin in plugins:
        if plugin.name in seen:
            continue
        seen.add(plugin.name)
        result.append(plugin)
    return result


def scan_tree(tree: PackageTree, prefix: Optional[str] = None) -> list[InstalledPlugin]:
    """Collect plugins from a package tree, depth first in child order.

    The root is always descended into, and recorded when it is a plugin
    itself. Any other package that is not a plugin is skipped along with
    everything below it. Plugins are recorded and their own dependencies
    are walked too.
    """
    results = []
    stack = [0]
    while stack:
        index = stack.pop()
        node = tree.nodes[index]
        if is_plugin_package(node.name, prefix):
            results.append(InstalledPlugin(
                name=to_plugin_name(node.name, prefix),
                version=node.version,
                path=node.real_path,
                depth=node.depth,
            ))
        elif index != 0:
            continue
        stack.extend(reversed(node.children))

    return unique_by_name(results)
