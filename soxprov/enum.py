
class Architecture:
    AMD64 = 'amd64'
    ARM64 = 'arm64'


class PortMode:
    Random = 'random'
    Manual = 'manual'


class Command:
    Start = 'start'
    Stop = 'stop'
    Restart = 'restart'
    Status = 'status'
    Info = 'info'
    Update = 'update'


class ExitCode:
    Success = 0
    GeneralFailure = 1
    PrivilegeError = 2
    InvalidPort = 3
    PortInUse = 4
    ExhaustedRange = 5
    UnsupportedArch = 6
    MetadataUnavailable = 7
    DownloadFailed = 8
    ServiceStartFailed = 9
    SupervisorError = 10
    UpgradeFailed = 11
    InfoUnavailable = 12


class Defaults:
    SERVICE_NAME = 'gost'
    BINARY_PATH = '/usr/local/bin/gost'
    SERVICE_DIR = '/etc/systemd/system'
    INFO_FILE = '/etc/s5_info'
    ARCH_FILE = '/etc/s5_arch'

    PORT_RANGE = (10000, 60000)
    PORT_ATTEMPTS = 100

    RELEASE_API_URL = 'https://api.github.com/repos/ginuerzh/gost/releases/latest'
    DOWNLOAD_URL = (
        'https://github.com/ginuerzh/gost/releases/download/'
        'v{version}/gost-linux-{arch}-{version}.gz')
    PUBLIC_IP_URL = 'https://api.ip.sb/ip'

    NETWORK_TIMEOUT = 10
    NETWORK_ATTEMPTS = 3
    ACTIVE_TIMEOUT = 10
