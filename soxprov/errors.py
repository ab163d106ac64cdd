from soxprov.enum import ExitCode


class ProvisioningError(RuntimeError):
    """Base class for failures that abort a provisioning run or an s5 command."""
    stage = 'provisioning'
    exit_code = ExitCode.GeneralFailure


class PrivilegeError(ProvisioningError):
    stage = 'privilege check'
    exit_code = ExitCode.PrivilegeError


class InvalidPort(ProvisioningError):
    stage = 'port selection'
    exit_code = ExitCode.InvalidPort


class PortInUse(ProvisioningError):
    stage = 'port selection'
    exit_code = ExitCode.PortInUse


class ExhaustedRange(ProvisioningError):
    stage = 'port selection'
    exit_code = ExitCode.ExhaustedRange


class UnsupportedArch(ProvisioningError):
    stage = 'binary installation'
    exit_code = ExitCode.UnsupportedArch


class MetadataUnavailable(ProvisioningError):
    stage = 'binary installation'
    exit_code = ExitCode.MetadataUnavailable


class DownloadFailed(ProvisioningError):
    stage = 'binary installation'
    exit_code = ExitCode.DownloadFailed


class ServiceStartFailed(ProvisioningError):
    stage = 'service registration'
    exit_code = ExitCode.ServiceStartFailed


class SupervisorError(ProvisioningError):
    stage = 'service control'
    exit_code = ExitCode.SupervisorError


class UpgradeFailed(ProvisioningError):
    stage = 'update'
    exit_code = ExitCode.UpgradeFailed


class InfoUnavailable(ProvisioningError):
    stage = 'info'
    exit_code = ExitCode.InfoUnavailable
