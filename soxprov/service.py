import logging
import subprocess
import time

from typing import Optional

from soxprov.config import InstallPaths, ProvisioningConfig
from soxprov.enum import Defaults
from soxprov.errors import ServiceStartFailed, SupervisorError
from soxprov.files import write_private

UNIT_TEMPLATE = '''[Unit]
Description=GO Simple Tunnel
After=network.target
Wants=network.target

[Service]
Type=simple
ExecStart={binary} -L="{listen_uri}"
Restart=always
RestartSec=5

[Install]
WantedBy=multi-user.target
'''


class SystemdService:
    """Control surface of the systemd unit that runs the proxy binary.

    State is never cached: every query goes to systemctl.
    """

    def __init__(
        self,
        logger: logging.Logger,
        paths: InstallPaths = InstallPaths(),
        active_timeout: float = Defaults.ACTIVE_TIMEOUT,
    ):
        self.__logger = logger
        self.__paths = paths
        self.__active_timeout = active_timeout

    @property
    def name(self) -> str:
        return self.__paths.service_name

    @property
    def log_hint(self) -> str:
        return f"journalctl -u {self.name}"

    def render_unit(self, config: ProvisioningConfig) -> str:
        return UNIT_TEMPLATE.format(binary=config.binary_path, listen_uri=config.listen_uri)

    def register(self, config: ProvisioningConfig) -> None:
        """Write the unit file, then reload, enable and start the service."""
        unit_file = self.__paths.unit_file
        write_private(unit_file, self.render_unit(config))
        self.__logger.info(f'Wrote unit file {unit_file}')

        try:
            self._systemctl('daemon-reload')
            self.enable()
            self.start()
        except SupervisorError as e:
            raise ServiceStartFailed(f"{e}\nRun '{self.log_hint}' to inspect the logs.") from e

        if not self.verify_active():
            raise ServiceStartFailed(
                f"Service {self.name} failed to start, run '{self.log_hint}' to inspect the logs.")

    def verify_active(self, timeout: Optional[float] = None, interval: float = 0.5) -> bool:
        """Poll systemd until the service is active or ``timeout`` seconds have passed."""
        timeout = self.__active_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while True:
            if self.is_active():
                return True
            if time.monotonic() >= deadline:
                self.__logger.warning(f'Service {self.name} not active after {timeout}s')
                return False
            time.sleep(interval)

    def is_active(self) -> bool:
        return self._systemctl('is-active', '--quiet', self.name, check=False).returncode == 0

    def enable(self) -> None:
        self._systemctl('enable', self.name)

    def start(self) -> None:
        self._systemctl('start', self.name)

    def stop(self) -> None:
        self._systemctl('stop', self.name)

    def restart(self) -> None:
        self._systemctl('restart', self.name)

    def status(self) -> str:
        result = self._systemctl('status', self.name, '--no-pager', check=False)
        return result.stdout + result.stderr

    def _systemctl(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        self.__logger.debug(f"systemctl {' '.join(args)}")
        result = subprocess.run(['systemctl', *args], capture_output=True, text=True)

        if check and result.returncode != 0:
            raise SupervisorError(
                f"'systemctl {' '.join(args)}' failed: {result.stdout}\n{result.stderr}".strip())

        return result
