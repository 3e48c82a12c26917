"""Plugin resolution, installation and listing endpoints."""
import logging
from pathlib import Path
from fastapi import APIRouter, Query

from schemas.plugin import (
    PluginInstallRequest,
    PluginLinkRequest,
    ResolveResponse,
    InstallResponse,
    InstalledPluginResponse,
)
from core.plugin_registry import plugin_registry
from core.plugin_ids import to_package_name, to_plugin_name
from core.project import Project
from core.exceptions import (
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _project_at(project_root: str) -> Project:
    """Build a project for an existing directory."""
    root = Path(project_root)
    if not root.is_dir():
        raise ValidationException(
            message="Invalid project root",
            detail=f"Project root '{project_root}' is not a directory"
        )
    return Project.at(root)


def _plugin_name(raw: str) -> str:
    """Plugin name for a request value. Scoped packages are not plugins."""
    plugin_name = to_plugin_name(raw)
    if not plugin_name or "/" in raw:
        raise ValidationException(
            message="Invalid plugin name",
            detail=f"'{raw}' is not a plugin name"
        )
    return plugin_name


@router.get("/plugins", response_model=list[InstalledPluginResponse])
async def list_plugins(project_root: str = Query(..., description="Project root directory")):
    """List default and project-installed plugins. Project installs win."""
    project = _project_at(project_root)
    plugins = await plugin_registry.list_plugins(project)
    return [InstalledPluginResponse.model_validate(p) for p in plugins]


@router.get("/plugins/installed", response_model=list[InstalledPluginResponse])
async def list_installed(path: str = Query(..., description="Folder to scan")):
    """List plugins installed under a folder."""
    plugins = await plugin_registry.list_installed(Path(path))
    return [InstalledPluginResponse.model_validate(p) for p in plugins]


@router.get("/plugins/{name}/resolve", response_model=ResolveResponse)
async def resolve_plugin(name: str):
    """Resolve the newest version of a plugin compatible with this engine."""
    plugin_name = _plugin_name(name)

    version = await plugin_registry.resolve_version(plugin_name)
    if not version:
        raise NotFoundException(
            detail=f"No version of plugin '{plugin_name}' is compatible with this engine"
        )
    return ResolveResponse(name=plugin_name, package_name=to_package_name(plugin_name), version=version)


@router.post("/plugins/install", response_model=InstallResponse, status_code=201)
async def install_plugin(request: PluginInstallRequest):
    """Install a plugin into a project."""
    plugin_name = _plugin_name(request.plugin_name)

    project = _project_at(request.project_root)
    logger.info(f"Installing plugin: name='{plugin_name}', version='{request.version}', root='{project.root}'")
    result = await plugin_registry.install_plugin(project, plugin_name, request.version)
    return InstallResponse.model_validate(result)


@router.post("/plugins/link", status_code=204)
async def link_plugin(request: PluginLinkRequest):
    """Link a local plugin directory into a project."""
    project = _project_at(request.project_root)
    plugin_registry.link_plugin(project, request.plugin_path)
