import logging
import psutil
import random
import socket

from typing import Optional

from soxprov.enum import Defaults, PortMode
from soxprov.errors import ExhaustedRange, InvalidPort, PortInUse

MIN_PORT = 1
MAX_PORT = 65535


class PortAllocator:
    def __init__(
        self,
        logger: logging.Logger,
        port_range: tuple[int, int] = Defaults.PORT_RANGE,
        max_attempts: int = Defaults.PORT_ATTEMPTS,
    ):
        self.__logger = logger
        self.__port_range = port_range
        self.__max_attempts = max_attempts

    def allocate(self, mode: str, manual_value: Optional[str] = None) -> int:
        """Select the proxy listen port.

        Args:
            mode (str):                   PortMode.Random or PortMode.Manual.
            manual_value (str, optional): The operator supplied port, manual mode only.

        Returns:
            int: A port no local listener is bound to.

        Raises:
            InvalidPort:    Non-numeric or out of range manual value, or unknown mode.
            PortInUse:      The manual port is already bound.
            ExhaustedRange: No free port found within max_attempts random draws.
        """
        if mode == PortMode.Random:
            return self.__allocate_random()
        if mode == PortMode.Manual:
            return self.__allocate_manual(manual_value)
        raise InvalidPort(f'Unknown port selection mode: {mode!r}')

    def bound_ports(self) -> set[int]:
        """Return local ports with a listening TCP socket or a bound UDP socket."""
        ports = set()
        for conn in psutil.net_connections(kind='inet'):
            if not conn.laddr:
                continue
            if conn.type == socket.SOCK_STREAM and conn.status != psutil.CONN_LISTEN:
                continue
            if conn.type == socket.SOCK_DGRAM and conn.raddr:
                continue
            ports.add(conn.laddr.port)
        return ports

    def __allocate_random(self) -> int:
        low, high = self.__port_range
        bound = self.bound_ports()
        for attempt in range(1, self.__max_attempts + 1):
            port = random.randint(low, high)
            if port not in bound:
                self.__logger.info(f'Selected random port {port} after {attempt} attempt(s)')
                return port
            self.__logger.debug(f'Port {port} is in use, retrying')
        raise ExhaustedRange(
            f'No free port found in {low}-{high} after {self.__max_attempts} attempts.')

    def __allocate_manual(self, value: Optional[str]) -> int:
        raw = '' if value is None else str(value).strip()
        if not (raw.isascii() and raw.isdigit()) or not MIN_PORT <= int(raw) <= MAX_PORT:
            raise InvalidPort(f'Port must be a number between {MIN_PORT} and {MAX_PORT}: {value!r}')

        port = int(raw)
        if port in self.bound_ports():
            raise PortInUse(f'Port {port} is already in use, please choose another one.')

        self.__logger.info(f'Port {port} is available')
        return port
