import gzip
import logging
import os
import platform
import requests
import shutil
import subprocess
import tempfile

from pathlib import Path
from typing import Callable, NamedTuple, Optional, TypeVar

from soxprov.config import ReleaseInfo
from soxprov.enum import Architecture, Defaults
from soxprov.errors import (
    DownloadFailed, MetadataUnavailable, SupervisorError, UnsupportedArch, UpgradeFailed)
from soxprov.service import SystemdService

ARCHITECTURES = {
    'x86_64': Architecture.AMD64,
    'aarch64': Architecture.ARM64,
}
CHUNK_SIZE = 64 * 1024

T = TypeVar('T')


class UpgradeResult(NamedTuple):
    updated: bool
    previous_version: str
    current_version: str


def detect_architecture(raw: Optional[str] = None) -> str:
    """Map a machine hardware name (``uname -m``) to the release architecture."""
    raw = platform.machine() if raw is None else raw
    try:
        return ARCHITECTURES[raw]
    except KeyError:
        raise UnsupportedArch(f'Unsupported system architecture: {raw!r}')


class BinaryProvisioner:
    """Download, install and upgrade the gost binary from its GitHub releases."""

    def __init__(
        self,
        logger: logging.Logger,
        binary_path: Path = Path(Defaults.BINARY_PATH),
        api_url: str = Defaults.RELEASE_API_URL,
        download_url: str = Defaults.DOWNLOAD_URL,
        timeout: float = Defaults.NETWORK_TIMEOUT,
        attempts: int = Defaults.NETWORK_ATTEMPTS,
    ):
        self.__logger = logger
        self.__binary_path = binary_path
        self.__api_url = api_url
        self.__download_url = download_url
        self.__timeout = timeout
        self.__attempts = attempts

    @property
    def binary_path(self) -> Path:
        return self.__binary_path

    def resolve_latest_release(self, arch: str) -> ReleaseInfo:
        """Query the release API for the newest tag.

        Raises:
            MetadataUnavailable: Network failure, rate limiting or a response without a tag.
        """
        try:
            response = self.__with_retries(lambda: self.__get(self.__api_url, headers={
                'Accept': 'application/vnd.github+json'}))
            tag = response.json().get('tag_name')
        except (requests.RequestException, ValueError, AttributeError) as e:
            raise MetadataUnavailable(
                f'Unable to fetch the latest gost version, check the network or GitHub API limits: {e}')

        if not isinstance(tag, str) or not tag.strip():
            raise MetadataUnavailable(
                'Unable to fetch the latest gost version, check the network or GitHub API limits.')

        version = tag.strip().removeprefix('v')
        return ReleaseInfo(version, self.__download_url.format(version=version, arch=arch))

    def download(self, release: ReleaseInfo) -> Path:
        """Fetch the compressed release artifact into a temporary file."""
        self.__logger.info(f'Downloading {release.download_url}')
        fd, name = tempfile.mkstemp(prefix='gost-', suffix='.gz')
        archive = Path(name)
        try:
            with os.fdopen(fd, 'wb') as file:
                self.__with_retries(lambda: self.__stream_to(release.download_url, file))
        except requests.RequestException as e:
            archive.unlink(missing_ok=True)
            raise DownloadFailed(f'Failed to download gost, check your network connection: {e}')

        return archive

    def install(self, archive: Path, target: Optional[Path] = None) -> Path:
        """Decompress ``archive`` over ``target`` atomically and make it executable."""
        target = target or self.__binary_path
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=f'.{target.name}-', dir=target.parent)
        staged = Path(name)
        try:
            with os.fdopen(fd, 'wb') as out, gzip.open(archive, 'rb') as src:
                shutil.copyfileobj(src, out)
            staged.chmod(0o755)
            os.replace(staged, target)
        except (OSError, EOFError) as e:
            staged.unlink(missing_ok=True)
            raise DownloadFailed(f'Failed to unpack {archive}: {e}')
        finally:
            archive.unlink(missing_ok=True)

        self.__logger.info(f'Installed {target}')
        return target

    def provision(self, arch: str) -> ReleaseInfo:
        release = self.resolve_latest_release(arch)
        self.install(self.download(release))
        return release

    def installed_version(self) -> Optional[str]:
        """Return the version the installed binary reports, e.g. ``2.11.5`` for ``gost v2.11.5 (go1.20 linux/amd64)``."""
        try:
            result = subprocess.run(
                [str(self.__binary_path), '-V'], capture_output=True, text=True, timeout=self.__timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            self.__logger.error(f'Unable to run {self.__binary_path}: {e}')
            return None

        fields = (result.stdout or result.stderr).split()
        if len(fields) < 2:
            return None

        return fields[1].removeprefix('v')

    def upgrade(self, service: SystemdService, arch: str) -> UpgradeResult:
        """Replace the binary with the latest release and restart the service.

        The previous binary is not kept, a failed upgrade leaves the new binary in place.
        """
        current = self.installed_version()
        if not current:
            raise UpgradeFailed('Unable to read the installed gost version, check that gost is installed correctly.')

        release = self.resolve_latest_release(arch)
        self.__logger.info(f'Installed version {current}, latest version {release.version}')
        if current == release.version:
            return UpgradeResult(False, current, current)

        archive = self.download(release)

        try:
            service.stop()
            self.install(archive)
            service.start()
        except (SupervisorError, DownloadFailed) as e:
            raise UpgradeFailed(f"Update failed: {e}\nRun '{service.log_hint}' to inspect the logs.") from e

        if not service.verify_active():
            raise UpgradeFailed(
                f"Update failed, service did not start. Run '{service.log_hint}' to inspect the logs.")

        return UpgradeResult(True, current, self.installed_version() or release.version)

    def __get(self, url: str, **kwargs) -> requests.Response:
        response = requests.get(url, timeout=self.__timeout, **kwargs)
        response.raise_for_status()
        return response

    def __stream_to(self, url: str, file) -> None:
        file.seek(0)
        file.truncate()
        with requests.get(url, stream=True, timeout=self.__timeout) as response:
            response.raise_for_status()
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                file.write(chunk)

    def __with_retries(self, fetch: Callable[[], T]) -> T:
        attempt = 1
        while True:
            try:
                return fetch()
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt >= self.__attempts:
                    raise
                self.__logger.warning(f'Attempt {attempt}/{self.__attempts} failed: {e}')
                attempt += 1
