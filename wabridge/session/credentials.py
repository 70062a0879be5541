"""Credential store -- the directory the transport provider keeps its keys in."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import time
from pathlib import Path
from typing import Any

from ..util.async_helpers import run_sync

logger = logging.getLogger(__name__)

CREDS_FILE = "creds.json"
WIPE_ATTEMPTS = 5


class CredentialStore:
    """JSON-file-backed session credentials.

    The provider may keep additional files (pre-keys, sync state) under
    :attr:`path`; the gateway only reads and writes ``creds.json`` and
    treats the whole directory as one unit when wiping.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @property
    def creds_path(self) -> Path:
        return self.path / CREDS_FILE

    def ensure(self) -> None:
        self.path.mkdir(parents=True, exist_ok=True)

    def load(self) -> dict[str, Any]:
        """Return the saved credentials blob, or an empty dict for a new pairing."""
        if not self.creds_path.exists():
            return {}
        return json.loads(self.creds_path.read_text())

    def save(self, blob: dict[str, Any]) -> None:
        self.ensure()
        tmp = self.creds_path.with_suffix(".tmp")
        tmp.write_text(json.dumps(blob, indent=2))
        tmp.replace(self.creds_path)

    def is_empty(self) -> bool:
        return not self.path.is_dir() or not any(self.path.iterdir())

    async def wipe(self) -> None:
        """Delete every stored credential and leave an empty directory behind.

        The directory is first renamed to a ``.bak-<ms>`` quarantine path.
        The backup is then removed with a few spaced-out retries; if it still
        resists, the original path is force-removed instead.
        """
        backup = self.path.with_name(f"{self.path.name}.bak-{int(time.time() * 1000)}")
        try:
            await run_sync(self.path.rename, backup)
        except OSError as exc:
            logger.debug("Rename of %s to quarantine failed: %s", self.path, exc)

        for attempt in range(WIPE_ATTEMPTS):
            try:
                await run_sync(_remove_tree, backup)
                break
            except OSError as exc:
                logger.warning(
                    "Removing %s failed (attempt %d/%d): %s",
                    backup, attempt + 1, WIPE_ATTEMPTS, exc,
                )
                await asyncio.sleep(0.3 + attempt * 0.2)
        else:
            logger.warning("Giving up on %s; forcing removal of %s", backup, self.path)

        await run_sync(shutil.rmtree, self.path, True)
        await run_sync(self.ensure)
        logger.info("Credential store reset at %s", self.path)


def _remove_tree(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
