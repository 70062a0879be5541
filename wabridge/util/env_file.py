"""Minimal ``.env`` file reader."""

from __future__ import annotations

from pathlib import Path


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class EnvFile:
    """Reads ``KEY=value`` lines, skipping comments and blank lines."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read_all(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        values: dict[str, str] = {}
        for line in self.path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            if stripped.startswith("export "):
                stripped = stripped[len("export "):]
            key, _, value = stripped.partition("=")
            values[key.strip()] = _unquote(value)
        return values

    def read(self, key: str) -> str:
        return self.read_all().get(key, "")
