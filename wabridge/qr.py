"""Pairing code rendering -- SVG for the control plane, text for the console."""

from __future__ import annotations

import segno
from rich.console import Console
from rich.text import Text

console = Console()


def qr_svg(data: str) -> str:
    return segno.make_qr(data).svg_inline(scale=4, border=2)


def qr_text(data: str) -> str:
    """Two module rows per line using half-block characters."""
    rows = [[bool(m) for m in row] for row in segno.make_qr(data).matrix_iter(border=2)]
    if len(rows) % 2:
        rows.append([False] * len(rows[0]))
    blocks = {(True, True): "█", (True, False): "▀", (False, True): "▄", (False, False): " "}
    return "\n".join(
        "".join(blocks[(top, bottom)] for top, bottom in zip(rows[i], rows[i + 1]))
        for i in range(0, len(rows), 2)
    )


def print_qr(data: str) -> None:
    console.clear()
    console.print("[bold]Scan QR di WhatsApp > Perangkat Tertaut:[/bold]")
    console.print(Text(qr_text(data)))
