from __future__ import annotations

import os
import sys
import tempfile
import textwrap
import time
from pathlib import Path

import pytest

# Keep the suite away from the real per-user data dir before yashell is imported.
os.environ.setdefault("YASHELL_APP_DATA_DIR", tempfile.mkdtemp(prefix="yashell-test-data-"))

from yashell.local.supervisor import ResolvedPath, SidecarSupervisor  # noqa: E402


def wait_for(predicate, timeout: float = 10.0, interval: float = 0.05):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(interval)
    return predicate()


@pytest.fixture
def sidecar_script(tmp_path):
    """Writes a python script that stands in for the sidecar and returns its path."""

    def _write(body: str, name: str = "index.py") -> Path:
        script = tmp_path / "sidecar" / name
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text(textwrap.dedent(body), encoding="utf-8")
        return script

    return _write


LONG_RUNNING = """
    import os, sys, time
    print("sidecar ready", flush=True)
    print("log dir=" + os.environ.get("YA_API_LOG_DIR", ""), flush=True)
    print("warming up", file=sys.stderr, flush=True)
    while True:
        time.sleep(0.2)
"""


@pytest.fixture
def make_supervisor(tmp_path):
    """Builds supervisors running a script through the current python, and stops them afterwards."""
    created: list[SidecarSupervisor] = []
    log_dir = tmp_path / "logs"

    def _make(script: Path | None = None, resolved: ResolvedPath | None = None, **kwargs) -> SidecarSupervisor:
        if resolved is None:
            resolved = ResolvedPath(path=script, interpreter=sys.executable)
        kwargs.setdefault("auto_clear_exited", False)
        supervisor = SidecarSupervisor(
            resolver=lambda: resolved,
            log_dir_provider=lambda: log_dir,
            name="test-sidecar",
            **kwargs,
        )
        created.append(supervisor)
        return supervisor

    _make.log_dir = log_dir
    yield _make

    for supervisor in created:
        try:
            supervisor.stop()
        except Exception:
            pass
