import logging
import os

from pathlib import Path
from typing import Any, Callable, Optional

from rich.console import Console
from rich.markup import escape

from soxprov.config import InstallPaths, ProvisioningConfig
from soxprov.credentials import CredentialGenerator
from soxprov.enum import Command, Defaults, ExitCode, PortMode
from soxprov.errors import InfoUnavailable, InvalidPort, PrivilegeError, ProvisioningError
from soxprov.firewall import FirewallConfigurator
from soxprov.ports import PortAllocator
from soxprov.release import BinaryProvisioner, detect_architecture
from soxprov.report import StatusReporter
from soxprov.service import SystemdService

USAGE = '''SOCKS5 proxy service management
--------------------------------
Usage: s5 [command]

Commands:
  start     Start the service
  stop      Stop the service
  restart   Restart the service
  status    Show the service status
  info      Show the connection info
  update    Update gost to the latest release

Without a command the connection info and this help are shown.'''


def configure_logging(verbosity: int = 0) -> logging.Logger:
    config: dict[str, Any] = {'format': BaseController.LOGGER_FORMAT}
    if not verbosity:
        config['level'] = logging.WARNING
    elif verbosity == 1:
        config['level'] = logging.INFO
    elif verbosity >= 2:
        config['level'] = logging.DEBUG
    logging.basicConfig(**config)

    return logging.getLogger('soxprov')


class BaseController:
    LOGGER_FORMAT = '%(asctime)s - %(name)s [%(levelname)s] %(message)s'

    def __init__(
        self,
        verbosity: int = 0,
        paths: InstallPaths = InstallPaths(),
        console: Optional[Console] = None,
        timeout: float = Defaults.NETWORK_TIMEOUT,
    ):
        self._logger = configure_logging(verbosity)
        self._paths = paths
        self._console = console or Console(highlight=False)
        self._service = SystemdService(self._logger.getChild('service'), paths)
        self._provisioner = BinaryProvisioner(
            self._logger.getChild('release'), paths.binary, timeout=timeout)
        self._reporter = StatusReporter(
            self._logger.getChild('report'), paths.info_file, timeout=timeout)

    def success(self, message: str) -> None:
        self._console.print(f'[green]{escape(message)}[/green]')

    def info(self, message: str) -> None:
        self._console.print(f'[yellow]{escape(message)}[/yellow]')

    def error(self, message: str) -> None:
        self._console.print(f'[red]{escape(message)}[/red]')

    def _fail(self, e: ProvisioningError) -> int:
        self._logger.error(f'{e.stage} failed: {e}')
        self.error(f'Error during {e.stage}: {e}')
        return e.exit_code


class AppController(BaseController):
    """One provisioning run, stages executed in order and aborted on the first failure."""

    def __init__(
        self,
        verbosity: int = 0,
        paths: InstallPaths = InstallPaths(),
        console: Optional[Console] = None,
        timeout: float = Defaults.NETWORK_TIMEOUT,
        max_attempts: int = Defaults.PORT_ATTEMPTS,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        super().__init__(verbosity, paths, console, timeout)
        self.__geteuid = geteuid
        self.__ports = PortAllocator(self._logger.getChild('ports'), max_attempts=max_attempts)
        self.__credentials = CredentialGenerator()
        self.__firewall = FirewallConfigurator(self._logger.getChild('firewall'))

    def run(self, port_mode: Optional[str] = None, port: Optional[str] = None) -> int:
        try:
            config = self.provision(port_mode, port)
        except ProvisioningError as e:
            return self._fail(e)

        self._console.clear()
        self.success('SOCKS5 proxy installed and running!')
        self._console.print(self._reporter.read() or '', markup=False, emoji=False)
        self.info("The connection details above include the password, keep them private.")
        self.info("Use the 's5' command to manage the service, 's5 update' upgrades the proxy binary.")
        return ExitCode.Success

    def provision(self, port_mode: Optional[str] = None, port: Optional[str] = None) -> ProvisioningConfig:
        if self.__geteuid() != 0:
            raise PrivilegeError('This installer must be run as root.')

        if port_mode is None:
            port_mode, port = self.__prompt_port()
        if port_mode == PortMode.Random:
            self.info('Looking for an unused random port...')
        selected_port = self.__ports.allocate(port_mode, port)
        self.success(f'Using port {selected_port}')

        credentials = self.__credentials.generate()
        self.success(f'Generated credentials for {credentials.username}')

        arch = detect_architecture()
        self.info(f'Downloading the latest gost release for {arch}...')
        release = self._provisioner.provision(arch)
        write_architecture(self._paths.arch_file, arch)
        self.success(f'gost v{release.version} installed to {self._paths.binary}')

        config = ProvisioningConfig(
            port=selected_port,
            username=credentials.username,
            password=credentials.password,
            architecture=arch,
            binary_path=self._paths.binary,
            service_name=self._paths.service_name,
        )

        self.info('Creating the systemd service...')
        self._service.register(config)
        self.success(f'Service {config.service_name} started and enabled at boot.')

        self.info('Configuring the firewall...')
        result = self.__firewall.open(config.port)
        if result is None:
            self.info(f'No ufw or firewalld found. If this host runs a firewall, open TCP port {config.port} manually.')
        elif result.opened:
            self.success(f'{result.backend}: TCP port {config.port} opened.')
        else:
            self.error(f'{result.backend} rejected the rule, open TCP port {config.port} manually.')

        self._reporter.report(config)
        return config

    def __prompt_port(self) -> tuple[str, Optional[str]]:
        self.info('Choose how to assign the port:')
        self._console.print('1) Pick a random free port (recommended)')
        self._console.print('2) Enter a port manually')
        choice = self._console.input('Option [1-2]: ').strip()

        if choice == '1':
            return PortMode.Random, None
        if choice == '2':
            return PortMode.Manual, self._console.input('SOCKS5 port (1-65535): ')
        raise InvalidPort(f'Invalid option {choice!r}.')


class ManagementController(BaseController):
    """The ``s5`` verbs, each one delegating to systemd or the binary provisioner."""

    def __init__(
        self,
        verbosity: int = 0,
        paths: InstallPaths = InstallPaths(),
        console: Optional[Console] = None,
        timeout: float = Defaults.NETWORK_TIMEOUT,
    ):
        super().__init__(verbosity, paths, console, timeout)
        self.__commands: dict[str, Callable[[], int]] = {
            Command.Start: self.start,
            Command.Stop: self.stop,
            Command.Restart: self.restart,
            Command.Status: self.status,
            Command.Info: self.show_info,
            Command.Update: self.update,
        }

    def dispatch(self, command: Optional[str]) -> int:
        handler = self.__commands.get(command or '')
        try:
            if handler is None:
                self.show_info()
                self._console.print(USAGE, markup=False, emoji=False)
                return ExitCode.Success
            return handler()
        except ProvisioningError as e:
            return self._fail(e)

    def start(self) -> int:
        self._service.start()
        self.success('Service started')
        return ExitCode.Success

    def stop(self) -> int:
        self._service.stop()
        self.success('Service stopped')
        return ExitCode.Success

    def restart(self) -> int:
        self._service.restart()
        self.success('Service restarted')
        return ExitCode.Success

    def status(self) -> int:
        self._console.print(self._service.status(), markup=False, emoji=False, end='')
        return ExitCode.Success

    def show_info(self) -> int:
        try:
            info = self._reporter.read()
        except InfoUnavailable as e:
            return self._fail(e)

        if info is None:
            self.error(f'{self._reporter.info_file} not found, has the proxy been installed?')
            return ExitCode.GeneralFailure

        self._console.print(info, markup=False, emoji=False)
        return ExitCode.Success

    def update(self) -> int:
        self.info('Checking for updates...')
        arch = read_architecture(self._paths.arch_file) or detect_architecture()
        result = self._provisioner.upgrade(self._service, arch)

        if not result.updated:
            self.success(f'Already running the latest version ({result.current_version}).')
        else:
            self.success(f'Updated gost {result.previous_version} -> {result.current_version}')
        return ExitCode.Success


def write_architecture(path: Path, arch: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f'{arch}\n')


def read_architecture(path: Path) -> Optional[str]:
    try:
        return path.read_text().strip() or None
    except FileNotFoundError:
        return None
