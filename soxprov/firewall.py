import logging
import shutil
import subprocess

from typing import NamedTuple, Optional, Sequence


class FirewallResult(NamedTuple):
    backend: str
    opened: bool


class FirewallBackend:
    name = ''
    executable = ''

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def detect(self) -> bool:
        return shutil.which(self.executable) is not None

    def open_port(self, port: int) -> bool:
        raise NotImplementedError

    def _run(self, *args: str) -> bool:
        result = subprocess.run([self.executable, *args], capture_output=True, text=True)

        if result.returncode != 0:
            self._logger.warning(
                f"'{self.executable} {' '.join(args)}' failed: {result.stdout}\n{result.stderr}".strip())
            return False

        return True


class FirewalldBackend(FirewallBackend):
    name = 'firewalld'
    executable = 'firewall-cmd'

    def open_port(self, port: int) -> bool:
        return self._run('--permanent', f'--add-port={port}/tcp') and self._run('--reload')


class UfwBackend(FirewallBackend):
    name = 'ufw'
    executable = 'ufw'

    def open_port(self, port: int) -> bool:
        return self._run('allow', f'{port}/tcp') and self._run('reload')


class FirewallConfigurator:
    """Open the proxy port on the first firewall backend found on the host.

    Backends are tried in order; firewalld wins over ufw when both are installed
    and only one of them is ever configured.
    """

    def __init__(self, logger: logging.Logger, backends: Optional[Sequence[FirewallBackend]] = None):
        self.__logger = logger
        self.__backends = list(backends) if backends is not None else [
            FirewalldBackend(logger),
            UfwBackend(logger),
        ]

    def open(self, port: int) -> Optional[FirewallResult]:
        for backend in self.__backends:
            if backend.detect():
                self.__logger.info(f'Detected {backend.name}, opening TCP port {port}')
                return FirewallResult(backend.name, backend.open_port(port))

        self.__logger.info(f'No firewall backend detected for port {port}')
        return None
