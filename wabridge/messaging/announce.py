"""Boot notification -- tells the operator the gateway is up."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import psutil

from ..errors import GatewayError
from .commands import now_wib

if TYPE_CHECKING:
    from .sender import SendGateway

logger = logging.getLogger(__name__)

_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


def format_bytes(size: float) -> str:
    if size is None or size != size or size in (float("inf"), float("-inf")):
        return "0 B"
    value = float(size)
    i = 0
    while value >= 1024 and i < len(_UNITS) - 1:
        value /= 1024
        i += 1
    fixed = f"{value:.0f}" if value >= 10 or i == 0 else f"{value:.2f}"
    return f"{fixed} {_UNITS[i]}"


@dataclass
class SystemStats:
    cores: int
    load: float
    mem_used: int | None = None
    mem_total: int | None = None
    disk_used: int | None = None
    disk_total: int | None = None


def system_stats(disk_path: Path | str = "/") -> SystemStats:
    """Snapshot of CPU, memory and storage on the host."""
    stats = SystemStats(cores=psutil.cpu_count() or 1, load=psutil.getloadavg()[0])

    mem = psutil.virtual_memory()
    stats.mem_used, stats.mem_total = mem.total - mem.available, mem.total
    try:
        usage = psutil.disk_usage(str(disk_path))
        stats.disk_used, stats.disk_total = usage.used, usage.total
    except OSError as exc:
        logger.warning("Failed to read storage stats: %s", exc)
    return stats


def build_boot_message(server_name: str, stats: SystemStats) -> str:
    lines = [
        "*Server Up and Running*",
        f"Server : {server_name}",
        f"Waktu  : {now_wib()} (WIB)",
        "Status : RUNNING",
        f"CPU    : {stats.cores} core | load {stats.load:.2f}",
    ]
    if stats.mem_total:
        lines.append(f"Memory : {format_bytes(stats.mem_used)} / {format_bytes(stats.mem_total)}")
    if stats.disk_total:
        lines.append(f"Storage: {format_bytes(stats.disk_used)} / {format_bytes(stats.disk_total)}")
    return "\n".join(lines)


async def announce_boot(
    gateway: SendGateway,
    targets: list[str],
    server_name: str,
    disk_path: Path | str = "/",
) -> int:
    """Send the boot message to every target; returns how many succeeded."""
    if not targets:
        return 0
    message = build_boot_message(server_name, system_stats(disk_path))
    sent = 0
    for jid in targets:
        try:
            await gateway.send_text(jid, message)
            sent += 1
        except GatewayError as exc:
            logger.warning("Boot announcement to %s failed: %s", jid, exc)
    return sent
