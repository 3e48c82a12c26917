"""npm registry queries and package installs.

All npm work goes through the npm CLI run in a worker thread. The client is
loaded lazily: the first operation locates the npm binary and checks that it
runs, and every later operation reuses that result.
"""
import asyncio
import json
import shutil
import subprocess
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from config import settings
from core.exceptions import InstallerError, RegistryQueryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InitGuard(Generic[T]):
    """Runs an async initializer at most once and shares its outcome.

    Callers arriving while the initializer is running await the same task
    instead of starting a second one. A successful result is kept for the
    life of the guard. A failure is raised to every waiter and then cleared
    so that a later call can try again.
    """

    def __init__(self, initializer: Callable[[], Awaitable[T]]):
        self._initializer = initializer
        self._task: Optional[asyncio.Future] = None
        self._result: Optional[T] = None
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    async def get(self) -> T:
        if self._done:
            return self._result

        if self._task is None:
            self._task = asyncio.ensure_future(self._initializer())
        task = self._task

        try:
            # shield: a cancelled waiter must not cancel the shared load
            result = await asyncio.shield(task)
        except Exception:
            if self._task is task:
                self._task = None
            raise

        self._result = result
        self._done = True
        self._task = None
        return result


@dataclass
class NpmEnvironment:
    """A loaded npm: resolved executable path and its version."""
    executable: str
    version: str


@dataclass
class InstallOptions:
    """Options for one npm install.

    quiet: suppress npm output (--loglevel=silent).
    prefix: npm prefix; packages land in <prefix>/node_modules.
    preload: load the npm client before installing.
    """
    quiet: bool = True
    prefix: Optional[Path] = None
    preload: bool = True


class NpmClient:
    """Registry query and installer capabilities backed by the npm CLI."""

    def __init__(self, executable: Optional[str] = None):
        self.executable = executable or settings.npm_executable
        self._loader: InitGuard[NpmEnvironment] = InitGuard(self._load)

    async def _run(self, args: list[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
        return await asyncio.to_thread(
            subprocess.run,
            args,
            capture_output=True,
            text=True,
            cwd=str(cwd) if cwd else None,
        )

    async def _load(self) -> NpmEnvironment:
        npm_path = shutil.which(self.executable)
        if npm_path is None:
            raise RegistryQueryError(f"npm executable '{self.executable}' not found on PATH")

        try:
            result = await self._run([npm_path, "--version", "--loglevel=silent"])
        except OSError as e:
            raise RegistryQueryError(f"Failed to run npm: {e}") from e
        if result.returncode != 0:
            raise RegistryQueryError(f"npm failed to load: {result.stderr.strip()}")

        env = NpmEnvironment(executable=npm_path, version=result.stdout.strip())
        logger.info(f"Loaded npm {env.version} from {env.executable}")
        return env

    async def load(self) -> NpmEnvironment:
        """Load npm once per client. Concurrent callers share one load."""
        return await self._loader.get()

    async def query_versions(self, package_name: str) -> dict[str, dict[str, Any]]:
        """Return {version: metadata} for every published version of a package.

        Metadata holds the fields npm reports for the version; ``engines`` is
        present only when the version declares it.
        """
        env = await self.load()
        args = [env.executable, "view", f"{package_name}@*", "version", "engines", "--json", "--loglevel=silent"]
        logger.info(f"Querying npm registry for {package_name}")

        try:
            result = await self._run(args)
        except OSError as e:
            raise RegistryQueryError(f"Failed to run npm view: {e}", package_name) from e
        if result.returncode != 0:
            raise RegistryQueryError(
                f"npm view {package_name} failed: {result.stderr.strip() or result.stdout.strip()}",
                package_name,
            )
        return parse_view_output(result.stdout, package_name)

    async def install_package(
        self,
        package_name: str,
        version: str,
        target_dir: Path,
        options: Optional[InstallOptions] = None,
    ) -> None:
        """Install package_name@version under target_dir.

        Reinstalling an already installed version is allowed; npm simply
        rewrites it.
        """
        options = options or InstallOptions()
        if options.preload:
            env = await self.load()
            executable = env.executable
        else:
            executable = self.executable

        prefix = options.prefix or target_dir
        args = [executable, "install", f"{package_name}@{version}", "--prefix", str(prefix), "--no-save"]
        if options.quiet:
            args.append("--loglevel=silent")

        logger.info(f"Installing {package_name}@{version} into {prefix}")
        try:
            result = await self._run(args, cwd=target_dir)
        except OSError as e:
            raise InstallerError(f"Failed to run npm install: {e}", package_name) from e
        if result.returncode != 0:
            raise InstallerError(
                f"npm install {package_name}@{version} failed: {result.stderr.strip()}",
                package_name=package_name,
                returncode=result.returncode,
                stderr=result.stderr,
            )


def parse_view_output(output: str, package_name: str) -> dict[str, dict[str, Any]]:
    """Parse ``npm view <pkg>@* version engines --json`` output.

    npm prints a single object when one version matches and a list of
    objects when several do. Empty output means nothing matched.
    """
    output = output.strip()
    if not output:
        return {}

    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise RegistryQueryError(f"Invalid JSON from npm view {package_name}: {e}", package_name) from e

    if isinstance(data, dict):
        entries = [data]
    elif isinstance(data, list):
        entries = data
    else:
        raise RegistryQueryError(f"Unexpected npm view output for {package_name}: {output[:200]}", package_name)

    versions = {}
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("version"), str):
            raise RegistryQueryError(f"Malformed npm view entry for {package_name}: {entry!r}", package_name)
        versions[entry["version"]] = {k: v for k, v in entry.items() if k != "version"}
    return versions
