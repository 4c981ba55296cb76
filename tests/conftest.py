"""Shared fixtures: a netplan directory on disk and fake host commands."""
from pathlib import Path
from typing import Callable, Optional

import pytest

from mcp_host_network.config.settings import Settings
from mcp_host_network.netplan.engine import NetplanEngine
from mcp_host_network.system.commands import CommandError, CommandResult

LIVE_INTERFACES = ["eth0", "eth1", "eno3", "lo"]


class FakeRunner:
    """Records commands instead of running them."""

    def __init__(self, fail: Optional[Callable[[tuple], bool]] = None):
        self.calls: list[tuple] = []
        self.fail = fail

    def __call__(self, program, args=(), **kwargs) -> CommandResult:
        cmd = (program, *args)
        self.calls.append(cmd)
        if self.fail and self.fail(cmd):
            raise CommandError(program, args, 2, "RTNETLINK answers: Cannot assign requested address")
        return CommandResult(0)


def fake_interfaces(prefix=None) -> list[str]:
    return [n for n in LIVE_INTERFACES if not prefix or n.startswith(prefix)]


@pytest.fixture
def netplan_dir(tmp_path) -> Path:
    path = tmp_path / "netplan"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, netplan_dir) -> Settings:
    staging = tmp_path / "staging"
    staging.mkdir()
    return Settings(
        netplan_dir=netplan_dir,
        staging_dir=staging,
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def engine(settings, runner) -> NetplanEngine:
    return NetplanEngine(settings, runner=runner, interfaces=fake_interfaces)


@pytest.fixture
def write_config(netplan_dir):
    """Write a netplan file into the directory."""
    def _write(name: str, text: str) -> Path:
        path = netplan_dir / name
        path.write_text(text)
        return path
    return _write
