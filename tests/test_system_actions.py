"""
Host capabilities with subprocess and psutil replaced.
"""

import asyncio
import subprocess
from types import SimpleNamespace

import psutil
import pytest

from zxping.common.config import NetworkProfile, SystemSettings
from zxping.common.exceptions import CommandError
from zxping.services.system import debug_bridge, network_tuner, reboot_handler
from zxping.services.system.actions import HostActions
from zxping.services.system.debug_bridge import DebugBridgeManager
from zxping.services.system.log_pruner import LogPruner
from zxping.services.system.network_tuner import NetworkTuner, parse_lan_network
from zxping.services.system.reboot_handler import RebootHandler
from zxping.services.system.shell import run_command


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class ShellRecorder:
    def __init__(self, outputs=None, failing=()):
        self.commands: list[str] = []
        self.outputs = outputs or {}
        self.failing = set(failing)

    def __call__(self, command, timeout=None):
        self.commands.append(command)
        if command in self.failing:
            raise CommandError("boom", command=command)
        return self.outputs.get(command, completed())


# ----------------------------------------------------------------------
# Network tuning
# ----------------------------------------------------------------------


def test_parse_lan_network():
    output = (
        "default via 10.0.0.1\n"
        "169.254.0.0/16 scope link\n"
        "192.168.5.0/24 proto kernel scope link src 192.168.5.1\n"
    )
    assert parse_lan_network(output) == "192.168.5.0/24"
    assert parse_lan_network("") is None


def test_throttled_profile(monkeypatch):
    shell = ShellRecorder()
    monkeypatch.setattr(network_tuner, "run_shell", shell)

    failures = NetworkTuner().apply_profile(NetworkProfile.THROTTLED)

    assert failures == 0
    assert shell.commands == network_tuner.THROTTLED_COMMANDS
    assert "echo 800 > /proc/sys/net/core/netdev_max_backlog" in shell.commands


def test_normal_profile_pauses_between_commands(monkeypatch):
    shell = ShellRecorder()
    sleeps = []
    monkeypatch.setattr(network_tuner, "run_shell", shell)
    monkeypatch.setattr(network_tuner.time, "sleep", sleeps.append)

    NetworkTuner().apply_profile(NetworkProfile.NORMAL)

    assert shell.commands == network_tuner.NORMAL_COMMANDS
    assert sleeps == [network_tuner.RESTORE_STEP_DELAY_S] * len(network_tuner.NORMAL_COMMANDS)


def test_optimized_profile_sets_up_nat(monkeypatch):
    shell = ShellRecorder(outputs={
        "ip route show dev br0": completed(stdout="192.168.8.0/24 proto kernel\n"),
    })
    monkeypatch.setattr(network_tuner, "run_shell", shell)

    NetworkTuner().apply_profile(NetworkProfile.OPTIMIZED)

    assert "iptables -t nat -A POSTROUTING -s 192.168.8.0/24 -o wan1 -j MASQUERADE" in shell.commands
    assert shell.commands[-len(network_tuner.OPTIMIZED_COMMANDS):] == network_tuner.OPTIMIZED_COMMANDS


def test_optimized_profile_falls_back_to_default_network(monkeypatch):
    shell = ShellRecorder(failing={"ip route show dev br0"})
    monkeypatch.setattr(network_tuner, "run_shell", shell)

    NetworkTuner().apply_profile(NetworkProfile.OPTIMIZED)

    assert "iptables -t nat -A POSTROUTING -s 192.168.0.0/24 -o wan1 -j MASQUERADE" in shell.commands


def test_failing_command_does_not_abort_profile(monkeypatch):
    first = network_tuner.THROTTLED_COMMANDS[0]
    shell = ShellRecorder(failing={first})
    monkeypatch.setattr(network_tuner, "run_shell", shell)

    failures = NetworkTuner().apply_profile(NetworkProfile.THROTTLED)

    assert failures == 1
    assert len(shell.commands) == len(network_tuner.THROTTLED_COMMANDS)


def test_clear_page_cache_rejected(monkeypatch):
    shell = ShellRecorder(outputs={
        network_tuner.DROP_CACHES_COMMAND: completed(returncode=1, stderr="Permission denied"),
    })
    monkeypatch.setattr(network_tuner, "run_shell", shell)

    with pytest.raises(CommandError):
        NetworkTuner().clear_page_cache()


# ----------------------------------------------------------------------
# Debug bridge
# ----------------------------------------------------------------------


class FakeProcess:
    def __init__(self, pid, cmdline, error=None):
        self.pid = pid
        self.info = {"pid": pid, "cmdline": cmdline}
        self.killed = False
        self.error = error

    def kill(self):
        if self.error:
            raise self.error
        self.killed = True


def test_kill_all_matches_cmdline(monkeypatch):
    adbd = FakeProcess(900010, ["/bin/adbd"])
    other = FakeProcess(900011, ["/bin/sh", "-c", "sleep 1"])
    gone = FakeProcess(900012, ["adbd", "--root"], error=psutil.NoSuchProcess(900012))
    unnamed = FakeProcess(900013, None)
    monkeypatch.setattr(debug_bridge.psutil, "process_iter", lambda attrs: [adbd, other, gone, unnamed])

    killed = DebugBridgeManager().kill_all()

    assert killed == 1
    assert adbd.killed and not other.killed


@pytest.mark.asyncio
async def test_restart_spawns_binary(monkeypatch):
    spawned = []
    monkeypatch.setattr(debug_bridge.psutil, "process_iter", lambda attrs: [])
    monkeypatch.setattr(
        debug_bridge, "spawn_detached",
        lambda args: spawned.append(args) or SimpleNamespace(pid=4242),
    )

    manager = DebugBridgeManager(SystemSettings(adbd_binary="/opt/adbd"), restart_settle_s=0)
    await manager.restart()

    assert spawned == [["/opt/adbd"]]
    assert manager.process.pid == 4242


@pytest.mark.asyncio
async def test_restarted_daemon_outlives_command_timeout(monkeypatch, tmp_path):
    fake_adbd = tmp_path / "adbd"
    fake_adbd.write_text("#!/bin/sh\nexec sleep 30\n")
    fake_adbd.chmod(0o755)
    monkeypatch.setattr(debug_bridge.psutil, "process_iter", lambda attrs: [])

    settings = SystemSettings(adbd_binary=str(fake_adbd), command_timeout_s=0.2)
    manager = DebugBridgeManager(settings, restart_settle_s=0)
    await manager.restart()

    try:
        await asyncio.sleep(0.5)
        assert manager.process.poll() is None
    finally:
        manager.process.kill()
        manager.process.wait()


@pytest.mark.asyncio
async def test_restart_missing_binary_raises(monkeypatch):
    monkeypatch.setattr(debug_bridge.psutil, "process_iter", lambda attrs: [])
    manager = DebugBridgeManager(
        SystemSettings(adbd_binary="/nonexistent/adbd-binary"), restart_settle_s=0
    )

    with pytest.raises(CommandError):
        await manager.restart()


# ----------------------------------------------------------------------
# Reboot, log pruning, shell
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reboot_failure_raises(monkeypatch):
    monkeypatch.setattr(reboot_handler, "run_command", lambda args, timeout: completed(returncode=1))
    handler = RebootHandler()

    with pytest.raises(CommandError):
        await handler.reboot()
    with pytest.raises(CommandError):
        await handler.reboot()

    assert handler.attempts == 2


def test_log_pruner_truncates(tmp_path):
    log_file = tmp_path / "zxping.log"
    log_file.write_text("old lines\n" * 10)

    LogPruner(log_file).truncate()

    assert log_file.read_text() == ""


def test_log_pruner_missing_directory(tmp_path):
    with pytest.raises(CommandError):
        LogPruner(tmp_path / "missing" / "zxping.log").truncate()


def test_run_command_missing_executable():
    with pytest.raises(CommandError):
        run_command(["/nonexistent/definitely-not-here"])


@pytest.mark.asyncio
async def test_host_actions_truncate(tmp_path):
    log_file = tmp_path / "zxping.log"
    log_file.write_text("data")

    actions = HostActions(SystemSettings(log_file=str(log_file)))
    await actions.truncate_log_file()

    assert log_file.read_text() == ""
