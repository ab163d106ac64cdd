from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from soxprov.files import write_private


def test_file_is_created_owner_only(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    modes = []
    real_open = os.open

    def recording_open(path, flags, mode=0o777, *args, **kwargs):
        modes.append(mode)
        return real_open(path, flags, mode, *args, **kwargs)

    monkeypatch.setattr(os, "open", recording_open)
    target = tmp_path / "etc" / "s5_info"

    write_private(target, "secret")

    assert modes == [0o600]
    assert target.read_text() == "secret"
    assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_existing_file_is_truncated_and_tightened(tmp_path: Path) -> None:
    target = tmp_path / "gost.service"
    target.write_text("a much longer previous content")
    target.chmod(0o644)

    write_private(target, "short")

    assert target.read_text() == "short"
    assert stat.S_IMODE(target.stat().st_mode) == 0o600
