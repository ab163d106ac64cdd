import logging
import requests

from pathlib import Path
from typing import Optional

from soxprov.config import ProvisioningConfig
from soxprov.enum import Defaults
from soxprov.errors import InfoUnavailable
from soxprov.files import write_private

ADDRESS_PLACEHOLDER = '<unavailable, please look it up manually>'
RULE = '=' * 49

INFO_TEMPLATE = f'''
{RULE}
 SOCKS5 Proxy Configuration
{RULE}
 Address:   {{address}}
 Port:      {{port}}
 Username:  {{username}}
 Password:  {{password}}
{RULE}
'''


class StatusReporter:
    """Connection details of the provisioned proxy, persisted to the info file."""

    def __init__(
        self,
        logger: logging.Logger,
        info_file: Path = Path(Defaults.INFO_FILE),
        ip_url: str = Defaults.PUBLIC_IP_URL,
        timeout: float = Defaults.NETWORK_TIMEOUT,
    ):
        self.__logger = logger
        self.__info_file = info_file
        self.__ip_url = ip_url
        self.__timeout = timeout

    @property
    def info_file(self) -> Path:
        return self.__info_file

    def public_address(self) -> str:
        try:
            response = requests.get(self.__ip_url, timeout=self.__timeout)
            response.raise_for_status()
            address = response.text.strip()
        except requests.RequestException as e:
            self.__logger.warning(f'Public address lookup failed: {e}')
            return ADDRESS_PLACEHOLDER

        return address or ADDRESS_PLACEHOLDER

    def format(self, config: ProvisioningConfig, address: str) -> str:
        return INFO_TEMPLATE.format(
            address=address, port=config.port, username=config.username, password=config.password)

    def report(self, config: ProvisioningConfig) -> str:
        """Write the info block for ``config``; call only once the service is active."""
        info = self.format(config, self.public_address())
        write_private(self.__info_file, info)
        self.__logger.info(f'Wrote connection info to {self.__info_file}')
        return info

    def read(self) -> Optional[str]:
        """Return the info block, or ``None`` when nothing has been provisioned yet.

        Raises:
            InfoUnavailable: The file exists but cannot be read, usually for lack of root.
        """
        try:
            return self.__info_file.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise InfoUnavailable(f'Cannot read {self.__info_file}, run as root: {e.strerror}')
