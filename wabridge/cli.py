"""Interactive operator console -- talks to a running gateway over HTTP."""

from __future__ import annotations

import argparse
import asyncio
import shlex
from typing import Any

import aiohttp
from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.table import Table

from .config.settings import cfg

console = Console()

_HELP = """[bold]Commands[/bold]
  status                 session readiness
  qr                     pairing status
  send <to> <text>       private message (MSISDN or JID)
  group <gid> <text>     group message
  logout                 end session, keep credentials
  reset                  wipe credentials and re-pair
  quit"""


class GatewayClient:
    """Thin async wrapper around the control-plane endpoints."""

    def __init__(self, base_url: str, token: str = "") -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._timeout = aiohttp.ClientTimeout(total=40)

    async def _request(self, method: str, path: str, **kwargs: Any) -> tuple[int, Any]:
        async with aiohttp.ClientSession(timeout=self._timeout, headers=self._headers) as session:
            async with session.request(method, f"{self.base_url}{path}", **kwargs) as resp:
                if resp.content_type == "application/json":
                    return resp.status, await resp.json()
                return resp.status, await resp.text()

    async def health(self) -> tuple[int, Any]:
        return await self._request("GET", "/health")

    async def qr(self) -> tuple[int, Any]:
        return await self._request("GET", "/qr")

    async def send_private(self, to: str, text: str) -> tuple[int, Any]:
        return await self._request("POST", "/send-private", json={"to": to, "text": text})

    async def send_group(self, gid: str, text: str) -> tuple[int, Any]:
        return await self._request("POST", "/send-group", json={"gid": gid, "text": text})

    async def logout(self) -> tuple[int, Any]:
        return await self._request("POST", "/logout")

    async def reset(self) -> tuple[int, Any]:
        return await self._request("POST", "/reset-session")


def _show(status: int, body: Any) -> None:
    style = "green" if status < 300 else "yellow" if status < 400 else "red"
    if isinstance(body, dict):
        table = Table(show_header=False, box=None)
        for key, value in body.items():
            table.add_row(f"[dim]{key}[/dim]", str(value))
        console.print(f"[{style}]HTTP {status}[/{style}]")
        console.print(table)
    else:
        console.print(f"[{style}]HTTP {status}[/{style}] {body}")


async def run_command(client: GatewayClient, line: str) -> bool:
    """Execute one console line; returns False when the console should exit."""
    try:
        parts = shlex.split(line)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        return True
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]

    if cmd in ("quit", "exit"):
        return False
    if cmd == "help":
        console.print(_HELP)
        return True

    try:
        if cmd == "status":
            _show(*await client.health())
        elif cmd == "qr":
            status, body = await client.qr()
            if status == 200 and str(body).lstrip().startswith("<svg"):
                console.print(f"Pairing pending -- open {client.base_url}/qr in a browser to scan.")
            else:
                _show(status, body)
        elif cmd in ("send", "group") and len(args) >= 2:
            target, text = args[0], " ".join(args[1:])
            if cmd == "send":
                _show(*await client.send_private(target, text))
            else:
                _show(*await client.send_group(target, text))
        elif cmd == "logout":
            _show(*await client.logout())
        elif cmd == "reset":
            _show(*await client.reset())
        else:
            console.print(f"[yellow]Unknown command:[/yellow] {line}\n{_HELP}")
    except aiohttp.ClientError as exc:
        console.print(f"[red]Gateway unreachable:[/red] {exc}")
    return True


async def _main(base_url: str, token: str) -> None:
    cfg.ensure_dirs()
    client = GatewayClient(base_url, token)
    console.print(f"[bold green]wabridge[/bold green] console -> {client.base_url}\nType [bold]help[/bold] for commands.\n")

    prompt_session: PromptSession[str] = PromptSession(history=FileHistory(str(cfg.cli_history_path)))
    while True:
        try:
            line = await asyncio.to_thread(prompt_session.prompt, HTML("<b>wa &gt;</b> "))
        except (EOFError, KeyboardInterrupt):
            break
        if not await run_command(client, line.strip()):
            break
    console.print("[dim]Goodbye.[/dim]")


def main() -> None:
    parser = argparse.ArgumentParser(description="wabridge operator console")
    parser.add_argument("--url", default=f"http://localhost:{cfg.port}")
    parser.add_argument("--token", default=cfg.send_token)
    args = parser.parse_args()
    try:
        asyncio.run(_main(args.url, args.token))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
