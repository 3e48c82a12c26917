"""Plugin schemas."""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PluginInstallRequest(BaseModel):
    """Schema for installing a plugin into a project."""
    plugin_name: str = Field(..., min_length=1, description="Plugin name, with or without the npm prefix")
    project_root: str = Field(..., description="Root directory of the project to install into")
    version: Optional[str] = Field(None, description="Exact version to install (newest compatible if not specified)")


class PluginLinkRequest(BaseModel):
    """Schema for linking a local plugin directory into a project."""
    project_root: str = Field(..., description="Root directory of the project")
    plugin_path: str = Field(..., description="Local directory of the plugin")


class ResolveResponse(BaseModel):
    """Newest version of a plugin compatible with the host engine."""
    name: str
    package_name: str
    version: str


class InstallResponse(BaseModel):
    """Schema for a completed installation."""
    plugin_name: str
    package_name: str
    version: str
    install_path: str

    model_config = ConfigDict(from_attributes=True)


class InstalledPluginResponse(BaseModel):
    """A plugin found installed on disk."""
    name: str
    version: str
    path: str
    depth: int

    model_config = ConfigDict(from_attributes=True)
