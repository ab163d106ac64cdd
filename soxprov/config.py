from dataclasses import dataclass, field
from pathlib import Path

from soxprov.enum import Defaults


@dataclass(frozen=True)
class InstallPaths:
    binary: Path = Path(Defaults.BINARY_PATH)
    service_dir: Path = Path(Defaults.SERVICE_DIR)
    info_file: Path = Path(Defaults.INFO_FILE)
    arch_file: Path = Path(Defaults.ARCH_FILE)
    service_name: str = Defaults.SERVICE_NAME

    @property
    def unit_file(self) -> Path:
        return self.service_dir / f'{self.service_name}.service'

    @classmethod
    def under(cls, root: Path) -> 'InstallPaths':
        """Relocate every path below ``root``, e.g. a temporary directory."""
        return cls(
            binary=root / 'usr/local/bin/gost',
            service_dir=root / 'etc/systemd/system',
            info_file=root / 'etc/s5_info',
            arch_file=root / 'etc/s5_arch',
        )


@dataclass(frozen=True)
class ProvisioningConfig:
    port: int
    username: str
    password: str = field(repr=False)
    architecture: str
    binary_path: Path
    service_name: str

    @property
    def listen_uri(self) -> str:
        return f'socks5://{self.username}:{self.password}@:{self.port}'


@dataclass(frozen=True)
class ReleaseInfo:
    version: str
    download_url: str
