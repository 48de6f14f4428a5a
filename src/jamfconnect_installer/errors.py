from __future__ import annotations


class InstallerError(Exception):
    """Base class for failures that end a run with a typed outcome."""

    status = "failed"


class DownloadError(InstallerError):
    status = "download_failed"


class MountError(InstallerError):
    status = "mount_failed"


class PackageMissingError(InstallerError):
    status = "package_missing"


class InstallError(InstallerError):
    status = "install_failed"


class WorkspaceError(InstallerError):
    status = "workspace_failed"


class VerifyError(InstallerError):
    status = "verify_failed"


class LogSetupError(Exception):
    pass
