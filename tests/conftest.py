"""Fakes for the host collaborators: systemctl, firewall tools, the socket table and HTTP."""

from __future__ import annotations

import gzip
import io
import json
import logging
import socket
import subprocess
from collections import namedtuple
from pathlib import Path

import psutil
import pytest
import requests
from rich.console import Console

from soxprov.config import InstallPaths

Addr = namedtuple("Addr", ["ip", "port"])
Conn = namedtuple("Conn", ["fd", "family", "type", "laddr", "raddr", "status", "pid"])


def listening(port: int) -> Conn:
    return Conn(-1, socket.AF_INET, socket.SOCK_STREAM, Addr("0.0.0.0", port), (), psutil.CONN_LISTEN, None)


def connected(port: int) -> Conn:
    return Conn(
        -1,
        socket.AF_INET,
        socket.SOCK_STREAM,
        Addr("10.0.0.2", port),
        Addr("10.0.0.9", 443),
        psutil.CONN_ESTABLISHED,
        None,
    )


def udp_bound(port: int) -> Conn:
    return Conn(-1, socket.AF_INET, socket.SOCK_DGRAM, Addr("0.0.0.0", port), (), psutil.CONN_NONE, None)


class FakeHost:
    """Stand-in for ``subprocess.run`` that models systemd and the firewall tools."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.active: dict[str, bool] = {}
        self.enabled: set[str] = set()
        self.start_succeeds = True
        self.binary_version: str | None = "2.11.5"
        self.tools: set[str] = set()
        self.fail: set[str] = set()

    def run(self, args, **kwargs) -> subprocess.CompletedProcess:
        args = [str(arg) for arg in args]
        self.calls.append(args)
        program = Path(args[0]).name
        if program == "systemctl":
            return self._systemctl(args)
        if program == "gost":
            if self.binary_version is None:
                return subprocess.CompletedProcess(args, 1, "", "")
            return subprocess.CompletedProcess(args, 0, f"gost v{self.binary_version} (go1.20 linux/amd64)\n", "")
        if program in self.fail:
            return subprocess.CompletedProcess(args, 1, "", f"{program}: failed")
        return subprocess.CompletedProcess(args, 0, "", "")

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.tools else None

    def commands(self, program: str) -> list[list[str]]:
        return [call[1:] for call in self.calls if Path(call[0]).name == program]

    def _systemctl(self, args: list[str]) -> subprocess.CompletedProcess:
        verb, name = args[1], args[-1]
        if verb == "daemon-reload":
            return subprocess.CompletedProcess(args, 0, "", "")
        if verb == "is-active":
            return subprocess.CompletedProcess(args, 0 if self.active.get(name) else 3, "", "")
        if verb == "status":
            name = args[2]
            state = "active (running)" if self.active.get(name) else "inactive (dead)"
            return subprocess.CompletedProcess(
                args, 0 if self.active.get(name) else 3, f"● {name}.service\n   Active: {state}\n", "")
        if verb == "enable":
            self.enabled.add(name)
        elif verb in ("start", "restart"):
            if not self.start_succeeds:
                return subprocess.CompletedProcess(args, 1, "", f"Job for {name}.service failed.")
            self.active[name] = True
        elif verb == "stop":
            self.active[name] = False
        return subprocess.CompletedProcess(args, 0, "", "")


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"") -> None:
        self.status_code = status_code
        self.content = body

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def json(self):
        return json.loads(self.content)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def iter_content(self, chunk_size: int = 1):
        stream = io.BytesIO(self.content)
        while chunk := stream.read(chunk_size):
            yield chunk

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        return None


class FakeWeb:
    """Maps URLs to responses or exceptions; unknown URLs raise ``ConnectionError``.

    Keyword arguments of every request are kept in ``options``.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list] = {}
        self.requested: list[str] = []
        self.options: list[tuple[str, dict]] = []

    def add(self, url: str, *outcomes) -> None:
        self.routes.setdefault(url, []).extend(outcomes)

    def get(self, url: str, **kwargs):
        self.requested.append(url)
        self.options.append((url, kwargs))
        outcomes = self.routes.get(url)
        if not outcomes:
            raise requests.ConnectionError(f"no route to {url}")
        outcome = outcomes[0] if len(outcomes) == 1 else outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def timeouts(self, url: str) -> list:
        return [kwargs.get("timeout") for requested, kwargs in self.options if requested == url]


def release_payload(tag: str) -> FakeResponse:
    return FakeResponse(200, json.dumps({"tag_name": tag, "assets": []}).encode("utf-8"))


def gzipped(payload: bytes) -> FakeResponse:
    return FakeResponse(200, gzip.compress(payload))


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("soxprov.tests")


@pytest.fixture
def host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    fake = FakeHost()
    monkeypatch.setattr(subprocess, "run", fake.run)
    monkeypatch.setattr("shutil.which", fake.which)
    return fake


@pytest.fixture
def web(monkeypatch: pytest.MonkeyPatch) -> FakeWeb:
    fake = FakeWeb()
    monkeypatch.setattr(requests, "get", fake.get)
    return fake


@pytest.fixture
def sockets(monkeypatch: pytest.MonkeyPatch) -> list[Conn]:
    table: list[Conn] = []
    monkeypatch.setattr(psutil, "net_connections", lambda kind="inet": list(table))
    return table


@pytest.fixture
def paths(tmp_path: Path) -> InstallPaths:
    return InstallPaths.under(tmp_path)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=1000, color_system=None, highlight=False)


def output(console: Console) -> str:
    return console.file.getvalue()
