"""Plugin version resolution, installation and discovery."""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from semantic_version import Version

from config import settings
from core.compat import CompatibilityPredicate, default_predicate
from core.exceptions import NoSatisfactoryVersionError, RegistryQueryError
from core.installed_tree import InstalledPlugin, read_installed, scan_tree, unique_by_name
from core.npm_client import InstallOptions, NpmClient
from core.plugin_ids import to_package_name
from core.project import Project

logger = logging.getLogger(__name__)


@dataclass
class VersionCandidate:
    """A published version and the engine range it declares, if any."""
    version: str
    engine_range: Optional[str] = None


@dataclass
class InstallResult:
    """Result of a plugin installation."""
    plugin_name: str
    package_name: str
    version: str
    install_path: str


class PluginRegistry:
    """Resolves, installs and lists plugins for projects.

    Collaborators:
    - npm: registry queries and installs (NpmClient)
    - satisfies: host predicate telling whether an engines range accepts
      the running engine version
    - defaults_dir: folder whose node_modules hold the bundled plugins

    Two concurrent installs of the same plugin into the same project are not
    coordinated here. Callers needing that must serialize them.
    """

    def __init__(
        self,
        npm: Optional[NpmClient] = None,
        satisfies: Optional[CompatibilityPredicate] = None,
        defaults_dir: Optional[Path] = None,
        scan_depth: Optional[int] = None,
    ):
        self.npm = npm or NpmClient()
        self.satisfies = satisfies or default_predicate()
        self.defaults_dir = Path(defaults_dir or settings.defaults_dir)
        self.scan_depth = settings.scan_depth if scan_depth is None else scan_depth

    def _candidates(self, versions: dict[str, dict[str, Any]]) -> list[VersionCandidate]:
        candidates = []
        for version, metadata in versions.items():
            engines = (metadata or {}).get("engines") or {}
            engine_range = engines.get(settings.engine_name) if isinstance(engines, dict) else None
            if engine_range is not None and not isinstance(engine_range, str):
                logger.debug(f"Ignoring non-string engine range for {version}: {engine_range!r}")
                engine_range = None
            candidates.append(VersionCandidate(version=version, engine_range=engine_range or None))
        return candidates

    async def resolve_version(self, plugin_name: str) -> Optional[str]:
        """Return the newest published version compatible with the host engine.

        Returns None when no version declares a range the host satisfies.
        Registry failures raise RegistryQueryError.
        """
        package_name = to_package_name(plugin_name)
        versions = await self.npm.query_versions(package_name)

        compatible = []
        for candidate in self._candidates(versions):
            if not candidate.engine_range or not self.satisfies(candidate.engine_range):
                continue
            try:
                parsed = Version(candidate.version)
            except ValueError as e:
                raise RegistryQueryError(
                    f"Invalid version '{candidate.version}' published for {package_name}", package_name
                ) from e
            # Build metadata does not affect precedence; the raw string keeps the order total
            compatible.append(((parsed.precedence_key, candidate.version), candidate.version))

        if not compatible:
            logger.info(f"No compatible version of {package_name} among {len(versions)} published")
            return None

        best = max(compatible)[1]
        logger.info(f"Resolved {package_name} to {best}")
        return best

    async def install_plugin(
        self,
        project: Project,
        plugin_name: str,
        version: Optional[str] = None,
    ) -> InstallResult:
        """Install a plugin into a project.

        Without an explicit version the newest compatible one is resolved
        first. Installer errors propagate untouched.
        """
        project.log.info(f"installing plugin {plugin_name}")
        package_name = to_package_name(plugin_name)

        if not version:
            project.log.info(f'No version specified, resolve plugin "{plugin_name}"')
            version = await self.resolve_version(plugin_name)

        if not version:
            raise NoSatisfactoryVersionError(plugin_name)

        project.log.info(f'install plugin "{plugin_name}" from npm ({package_name}) with version {version}')
        await self.npm.install_package(
            package_name,
            version,
            target_dir=project.root,
            options=InstallOptions(quiet=True, prefix=project.root, preload=True),
        )

        project.log.ok(f'plugin "{plugin_name}" installed with success')
        return InstallResult(
            plugin_name=plugin_name,
            package_name=package_name,
            version=version,
            install_path=str(Path(project.root) / "node_modules" / package_name),
        )

    def link_plugin(self, project: Project, plugin_path: str) -> None:
        """Record that a local plugin directory is linked into a project."""
        project.log.info(f"linking {plugin_path}")

    async def list_installed(self, folder: Path) -> list[InstalledPlugin]:
        """List plugins installed under a folder, in discovery order."""
        tree = await asyncio.to_thread(read_installed, Path(folder), self.scan_depth)
        return scan_tree(tree)

    async def list_plugins(self, project: Project) -> list[InstalledPlugin]:
        """List the bundled default plugins and those installed in the project.

        A plugin installed in the project shadows a bundled one of the same
        name, so project results must come first.
        """
        defaults, installed = await asyncio.gather(
            self.list_installed(self.defaults_dir),
            self.list_installed(project.root),
        )
        return unique_by_name(installed + defaults)


# Global instance
plugin_registry = PluginRegistry()
