"""Application exceptions.

Every error raised by the plugin core derives from AppException so the API
layer can render it with a single handler. The status code and error code are
class attributes; message and detail are per instance.
"""
from typing import Optional


class AppException(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal error", detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(detail or message)


class NotFoundException(AppException):
    """Requested resource does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", detail: Optional[str] = None):
        super().__init__(message=message, detail=detail)


class ValidationException(AppException):
    """Request is malformed or violates a precondition."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", detail: Optional[str] = None):
        super().__init__(message=message, detail=detail)


class NoSatisfactoryVersionError(AppException):
    """No published version of a plugin is compatible with the host engine.

    Raised by install only. Resolution itself reports this case as None.
    """

    status_code = 404
    code = "NO_SATISFACTORY_VERSION"

    def __init__(self, plugin_name: str):
        self.plugin_name = plugin_name
        super().__init__(
            message="No satisfactory version",
            detail=f'Found no satisfactory version for plugin "{plugin_name}"',
        )


class RegistryQueryError(AppException):
    """The package registry could not be queried or its answer parsed."""

    status_code = 502
    code = "REGISTRY_ERROR"

    def __init__(self, detail: str, package_name: Optional[str] = None):
        self.package_name = package_name
        super().__init__(message="Registry query failed", detail=detail)


class InstallerError(AppException):
    """The package installer failed. Carries the installer's own output."""

    status_code = 502
    code = "INSTALL_FAILED"

    def __init__(
        self,
        detail: str,
        package_name: Optional[str] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.package_name = package_name
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message="Plugin installation failed", detail=detail)


class TreeReadError(AppException):
    """Installed package metadata under a folder could not be read."""

    status_code = 500
    code = "TREE_READ_ERROR"

    def __init__(self, detail: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message="Failed to read installed packages", detail=detail)
