"""Chat command dispatcher.

Exact single-word commands are looked up in a table; commands that take an
argument match on their prefix.  Matching is case-insensitive, arguments
keep their original case.  Text that matches nothing is ignored.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

import aiohttp

from ..session.transport import OutboundContent
from .extract import InboundMessageEvent

logger = logging.getLogger(__name__)

WIB = ZoneInfo("Asia/Jakarta")
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_FETCH_TIMEOUT = aiohttp.ClientTimeout(total=30)

ReplyFn = Callable[[OutboundContent], Awaitable[object]]

HELP_TEXT = "\n".join([
    "📋 *Menu Perintah*",
    "- `ping` → tes bot",
    "- `info` → info singkat",
    "- `waktu` → jam server",
    "- `id` → JID kamu",
    "- `balas <teks>` → bot membalas teks",
    "- `foto <url>` → kirim gambar dari URL",
    "",
    "Catatan: di *grup*, bot hanya merespons jika *di-mention*.",
])


def now_wib() -> str:
    return datetime.now(WIB).strftime("%d %b %Y, %H.%M.%S")


@dataclass(frozen=True)
class NormalizedCommand:
    conversation_id: str
    command_token: str
    argument_text: str


@dataclass
class CommandContext:
    event: InboundMessageEvent
    command: NormalizedCommand
    reply: ReplyFn

    async def reply_text(self, text: str) -> None:
        await self.reply(OutboundContent.of_text(text))


class CommandDispatcher:
    _EXACT_COMMANDS: dict[str, str] = {
        "ping": "_cmd_ping",
        "menu": "_cmd_help",
        "help": "_cmd_help",
        "!help": "_cmd_help",
        "info": "_cmd_info",
        "waktu": "_cmd_time",
        "id": "_cmd_id",
    }

    _PREFIX_COMMANDS: tuple[tuple[str, str], ...] = (
        ("balas ", "_cmd_echo"),
        ("foto ", "_cmd_photo"),
    )

    def _match(self, event: InboundMessageEvent, text: str) -> tuple[NormalizedCommand, str] | None:
        lower = text.lower()
        handler_name = self._EXACT_COMMANDS.get(lower)
        if handler_name:
            return NormalizedCommand(event.conversation_id, lower, ""), handler_name

        for prefix, handler_name in self._PREFIX_COMMANDS:
            if lower.startswith(prefix):
                argument = text[len(prefix):].strip()
                return NormalizedCommand(event.conversation_id, prefix.strip(), argument), handler_name
        return None

    def parse(self, event: InboundMessageEvent, text: str) -> NormalizedCommand | None:
        matched = self._match(event, text)
        return matched[0] if matched else None

    async def try_handle(self, event: InboundMessageEvent, text: str, reply: ReplyFn) -> bool:
        matched = self._match(event, text)
        if matched is None:
            return False
        command, handler_name = matched
        await getattr(self, handler_name)(CommandContext(event, command, reply))
        return True

    async def _cmd_ping(self, ctx: CommandContext) -> None:
        await ctx.reply_text("pong ✅")

    async def _cmd_help(self, ctx: CommandContext) -> None:
        await ctx.reply_text(HELP_TEXT)

    async def _cmd_info(self, ctx: CommandContext) -> None:
        name = ctx.event.sender_display_name or "teman"
        await ctx.reply_text(
            f"👋 Hai *{name}*!\n"
            "Bot ini berjalan sebagai gateway WhatsApp Web.\n"
            "Ketik *menu* untuk lihat perintah."
        )

    async def _cmd_time(self, ctx: CommandContext) -> None:
        await ctx.reply_text(f"⏰ {now_wib()} (WIB)")

    async def _cmd_id(self, ctx: CommandContext) -> None:
        await ctx.reply_text(f"🆔 JID kamu: {ctx.event.conversation_id}")

    async def _cmd_echo(self, ctx: CommandContext) -> None:
        if ctx.command.argument_text:
            await ctx.reply_text(ctx.command.argument_text)

    async def _cmd_photo(self, ctx: CommandContext) -> None:
        url = ctx.command.argument_text
        if not _URL_RE.match(url):
            await ctx.reply_text("❌ URL tidak valid. Contoh: foto https://picsum.photos/600")
            return
        try:
            data = await fetch_image(url)
        except ImageFetchError as exc:
            await ctx.reply_text(f"❌ Gagal ambil gambar: {exc}")
            return
        await ctx.reply(OutboundContent.of_image(data, caption=f"📷 dari URL: {url}"))


class ImageFetchError(Exception):
    pass


async def fetch_image(url: str) -> bytes:
    try:
        async with aiohttp.ClientSession(timeout=_FETCH_TIMEOUT) as session:
            async with session.get(url) as resp:
                if resp.status >= 400:
                    raise ImageFetchError(f"{resp.status} {resp.reason or ''}".strip())
                return await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.warning("Image fetch from %s failed: %s", url, exc)
        raise ImageFetchError(str(exc) or type(exc).__name__) from exc
