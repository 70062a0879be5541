"""Chat address helpers -- private (``@s.whatsapp.net``) and group (``@g.us``)."""

from __future__ import annotations

import re

from ..util.result import Result

PRIVATE_SUFFIX = "@s.whatsapp.net"
GROUP_SUFFIX = "@g.us"
COUNTRY_CODE = "62"

_MSISDN_RE = re.compile(rf"^{COUNTRY_CODE}\d{{6,15}}$")


def normalize_user_id(jid: str) -> str:
    """Strip the device suffix (``628...:12@s.whatsapp.net``) and legacy domain."""
    jid = (jid or "").strip()
    if "@" not in jid:
        return jid
    user, _, server = jid.partition("@")
    user = user.split(":", 1)[0]
    if server == "c.us":
        server = PRIVATE_SUFFIX[1:]
    return f"{user}@{server}"


def is_group_address(jid: str | None) -> bool:
    return isinstance(jid, str) and jid.endswith(GROUP_SUFFIX)


def msisdn_of(jid: str) -> str:
    return normalize_user_id(jid).split("@", 1)[0]


def normalize_private_target(value: object) -> Result[str]:
    """Turn an MSISDN or full private address into a private address.

    A leading ``0`` is rewritten to the country code.  The address is in
    ``Result.value`` on success; ``Result.error`` explains a rejection.
    """
    raw = str(value or "").strip()
    if not raw:
        return Result.fail("to is required")
    if raw.endswith(PRIVATE_SUFFIX):
        return Result.ok(normalize_user_id(raw))

    digits = re.sub(r"\D", "", raw)
    if digits.startswith("0"):
        digits = COUNTRY_CODE + digits[1:]
    if not _MSISDN_RE.match(digits):
        return Result.fail(
            f"Invalid number format. Example: {COUNTRY_CODE}812xxxx or {COUNTRY_CODE}812xxxx{PRIVATE_SUFFIX}"
        )
    return Result.ok(f"{digits}{PRIVATE_SUFFIX}")


def private_target_from_query(value: str) -> Result[str]:
    """Stricter form for query strings: digits only, country code required."""
    digits = re.sub(r"\D", "", value or "")
    if not digits.startswith(COUNTRY_CODE):
        return Result.fail(f"Use an Indonesian MSISDN, e.g. {COUNTRY_CODE}812xxxxxxx")
    return Result.ok(f"{digits}{PRIVATE_SUFFIX}")
