"""Application settings -- reads from environment and ``.env`` file.

All configuration is consolidated here.  Values in the ``.env`` file win
over process environment variables so an operator can pin a deployment
without touching the container definition.
"""

from __future__ import annotations

import os
import socket
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton


def _as_int(raw: str, default: int) -> int:
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


class Settings:
    """Runtime configuration sourced from environment variables and ``.env``."""

    _DATA_DIR_ENV: ClassVar[str] = "WABRIDGE_DATA_DIR"

    def __init__(self) -> None:
        # Resolve .env path: explicit DOTENV_PATH > data_dir/.env > CWD/.env
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            if data_dir:
                dotenv = str(Path(data_dir) / ".env")
            else:
                dotenv = ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        """Re-read the ``.env`` file and environment variables."""
        e = self._read

        self.webhook_url: str = e("N8N_INCOMING_URL") or e("WEBHOOK_URL")
        self.webhook_token: str = e("WEBHOOK_TOKEN")
        self.send_token: str = e("SEND_TOKEN")

        self.port: int = _as_int(e("PORT"), 3000)
        self.log_level: str = (e("LOG_LEVEL") or "INFO").upper()

        self._session_dir: str = e("SESSION_DIR")
        self.transport_factory: str = e("TRANSPORT_FACTORY")

        self.up_private: str = e("UP_PRIVATE")
        self.up_group: str = e("UP_GROUP")
        self.server_name: str = e("SERVER_NAME") or e("APP_NAME") or socket.gethostname()

        # Only an explicit "false" turns the fallback off.
        self.fallback_text_mention: bool = (e("FALLBACK_TEXT_MENTION") or "true").lower() != "false"

        self.send_jitter_min_ms: int = _as_int(e("SEND_JITTER_MIN_MS"), 300)
        self.send_jitter_max_ms: int = _as_int(e("SEND_JITTER_MAX_MS"), 1200)

    # -- derived paths -----------------------------------------------------

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".wabridge")))

    @property
    def session_dir(self) -> Path:
        """Credential store directory; must live on a persisted volume."""
        if self._session_dir:
            return Path(self._session_dir)
        return self.data_dir / "auth"

    @property
    def boot_targets(self) -> list[str]:
        return [t for t in (self.up_private, self.up_group) if t]

    @property
    def cli_history_path(self) -> Path:
        return self.data_dir / ".cli_history"

    # -- helpers -----------------------------------------------------------

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def ensure_dirs(self) -> None:
        for d in (self.data_dir, self.session_dir):
            d.mkdir(parents=True, exist_ok=True)


# Module-level singleton
cfg = Settings()


def _reset_cfg() -> None:
    global cfg
    cfg = Settings()


register_singleton("cfg", _reset_cfg)
