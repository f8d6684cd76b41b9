"""
Network Parameter Tuner

Applies kernel network parameter profiles through /proc/sys and manages the
page cache. Each profile is a fixed list of shell commands; a failing
command is logged and the rest of the profile still runs.
"""

import time

from zxping.common.config import NetworkProfile, SystemSettings
from zxping.common.exceptions import CommandError
from zxping.common.logging_setup import get_service_logger
from .shell import run_shell

logger = get_service_logger("system.network")

THROTTLED_COMMANDS = [
    "echo 800 > /proc/sys/net/core/netdev_max_backlog",
    "echo 3000 > /proc/sys/net/unix/max_dgram_qlen",
    "echo 5 > /proc/sys/net/ipv4/tcp_retries2",
    "echo 300 > /proc/sys/net/ipv4/tcp_keepalive_time",
    "echo 5 > /proc/sys/net/ipv4/netfilter/ip_conntrack_tcp_timeout_time_wait",
    "echo 900 > /proc/sys/net/ipv4/netfilter/ip_conntrack_tcp_timeout_established",
    "echo 3800 > /proc/sys/net/nf_conntrack_max",
]

NORMAL_COMMANDS = [
    "echo 1000 > /proc/sys/net/core/netdev_max_backlog",
    "echo 5000 > /proc/sys/net/unix/max_dgram_qlen",
    "echo 10 > /proc/sys/net/ipv4/tcp_retries2",
    "echo 600 > /proc/sys/net/ipv4/tcp_keepalive_time",
    "echo 10 > /proc/sys/net/ipv4/netfilter/ip_conntrack_tcp_timeout_time_wait",
    "echo 1800 > /proc/sys/net/ipv4/netfilter/ip_conntrack_tcp_timeout_established",
    "echo 4800 > /proc/sys/net/nf_conntrack_max",
]

OPTIMIZED_COMMANDS = [
    "echo 1000 > /proc/sys/net/core/netdev_max_backlog",
    "echo 5000 > /proc/sys/net/unix/max_dgram_qlen",
    "echo 128 > /proc/sys/net/ipv4/tcp_max_syn_backlog",
    "echo 10 > /proc/sys/net/ipv4/tcp_retries2",
    "echo 15 > /proc/sys/net/ipv4/tcp_fin_timeout",
    "echo 600 > /proc/sys/net/ipv4/tcp_keepalive_time",
    "echo 10 > /proc/sys/net/ipv4/netfilter/ip_conntrack_tcp_timeout_time_wait",
    "echo 1800 > /proc/sys/net/ipv4/netfilter/ip_conntrack_tcp_timeout_established",
    "echo 15 > /proc/sys/net/ipv4/netfilter/ip_conntrack_udp_timeout",
    "echo 10 > /proc/sys/net/ipv4/netfilter/ip_conntrack_udp_timeout_stream",
    "echo 20 > /proc/sys/net/ipv4/netfilter/ip_conntrack_tcp_timeout_close",
    "echo 4800 > /proc/sys/net/nf_conntrack_max",
]

DROP_CACHES_COMMAND = "echo 1 > /proc/sys/vm/drop_caches"

# Pause between restore commands so conntrack settles
RESTORE_STEP_DELAY_S = 0.2


def parse_lan_network(route_output: str) -> str | None:
    """Return the first subnet route (e.g. 192.168.0.0/24) from `ip route` output"""
    for line in route_output.splitlines():
        parts = line.split()
        if not parts or "/" not in parts[0]:
            continue
        network = parts[0]
        if network != "default" and not network.startswith("169.254"):
            return network
    return None


def firewall_commands(lan_network: str, wan_interface: str) -> list[str]:
    """iptables reset plus NAT for the LAN network"""
    return [
        "iptables -P INPUT ACCEPT",
        "iptables -P FORWARD ACCEPT",
        "iptables -P OUTPUT ACCEPT",
        "iptables -F -t filter",
        "iptables -F -t nat",
        f"iptables -t nat -A POSTROUTING -s {lan_network} -o {wan_interface} -j MASQUERADE",
        "ip6tables -F",
    ]


class NetworkTuner:
    """Applies network profiles and clears the page cache"""

    def __init__(self, settings: SystemSettings | None = None):
        self.settings = settings or SystemSettings()

    def apply_profile(self, profile: NetworkProfile) -> int:
        """
        Apply one network profile.

        Returns:
            Number of commands that could not be run
        """
        if profile == NetworkProfile.THROTTLED:
            commands, delay = THROTTLED_COMMANDS, 0.0
        elif profile == NetworkProfile.NORMAL:
            commands, delay = NORMAL_COMMANDS, RESTORE_STEP_DELAY_S
        else:
            commands = firewall_commands(
                self.discover_lan_network(), self.settings.wan_interface
            ) + OPTIMIZED_COMMANDS
            delay = 0.0

        failures = 0
        for command in commands:
            if delay:
                time.sleep(delay)
            try:
                run_shell(command, timeout=self.settings.command_timeout_s)
            except CommandError as e:
                failures += 1
                logger.warning(f"Failed to adjust network parameter: {e}")

        logger.info(
            f"Applied {profile.value} network profile",
            extra={"profile": profile.value, "failures": failures},
        )
        return failures

    def discover_lan_network(self) -> str:
        """Find the LAN subnet on the bridge interface, with a fixed fallback"""
        interface = self.settings.lan_interface
        try:
            result = run_shell(
                f"ip route show dev {interface}",
                timeout=self.settings.command_timeout_s,
            )
            if result.returncode == 0:
                network = parse_lan_network(result.stdout)
                if network:
                    logger.info(f"Found {interface} network: {network}")
                    return network
        except CommandError as e:
            logger.warning(f"Cannot query routes for {interface}: {e}")

        fallback = self.settings.default_lan_network
        logger.info(f"Could not determine {interface} network, using default {fallback}")
        return fallback

    def clear_page_cache(self) -> None:
        """
        Drop clean page cache entries (needs root).

        Raises:
            CommandError: If the command cannot be run or is rejected
        """
        result = run_shell(DROP_CACHES_COMMAND, timeout=self.settings.command_timeout_s)
        if result.returncode != 0:
            raise CommandError(
                f"drop_caches rejected: {result.stderr.strip() or result.returncode}",
                command=DROP_CACHES_COMMAND,
            )
        logger.info("Page cache cleared")
