"""Watch configuration loaded from banwatch.toml."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .records import BAN_LIST_FILE_NAME, LOG_FILE_NAME, USER_CACHE_FILE_NAME
from .watcher import WatchMode

DEFAULT_CONFIG_NAME = "banwatch.toml"


@dataclass(frozen=True)
class WatchConfig:
    """Where to watch and how."""

    directory: Path = Path("logs")
    mode: WatchMode = WatchMode.LOG
    file_name: str = LOG_FILE_NAME
    user_cache: str = USER_CACHE_FILE_NAME
    polling: bool = False
    poll_interval: float = 1.0

    @property
    def target(self) -> Path:
        return self.directory / self.file_name

    def with_overrides(self, **overrides: Any) -> "WatchConfig":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "mode" in values:
            values["mode"] = _parse_mode(values["mode"])
            if "file_name" not in values and self.file_name == default_file_name(self.mode):
                values["file_name"] = default_file_name(values["mode"])
        if "directory" in values:
            values["directory"] = Path(values["directory"])
        return replace(self, **values)


def default_file_name(mode: WatchMode) -> str:
    return BAN_LIST_FILE_NAME if mode == WatchMode.SNAPSHOT else LOG_FILE_NAME


def _parse_mode(value: Any) -> WatchMode:
    if isinstance(value, WatchMode):
        return value
    try:
        return WatchMode(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in WatchMode)
        raise ValueError(f"watch.mode must be one of {choices}, got {value!r}") from None


def _require_str(table: dict[str, Any], key: str, default: str) -> str:
    value = table.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"watch.{key} must be a non-empty string")
    return value.strip()


def parse_config(data: dict[str, Any], base_dir: Path) -> WatchConfig:
    """
    Build a WatchConfig from the decoded TOML document.

    Relative directories resolve against `base_dir`.
    """
    table = data.get("watch", {})
    if not isinstance(table, dict):
        raise ValueError("[watch] must be a table")

    mode = _parse_mode(table.get("mode", WatchMode.LOG.value))

    directory = Path(_require_str(table, "directory", "logs"))
    if not directory.is_absolute():
        directory = base_dir / directory

    polling = table.get("polling", False)
    if not isinstance(polling, bool):
        raise ValueError("watch.polling must be true or false")

    poll_interval = table.get("poll_interval", 1.0)
    if isinstance(poll_interval, bool) or not isinstance(poll_interval, (int, float)) or poll_interval <= 0:
        raise ValueError("watch.poll_interval must be a positive number")

    return WatchConfig(
        directory=directory,
        mode=mode,
        file_name=_require_str(table, "file_name", default_file_name(mode)),
        user_cache=_require_str(table, "user_cache", USER_CACHE_FILE_NAME),
        polling=polling,
        poll_interval=float(poll_interval),
    )


def load_config(path: Path | None = None) -> WatchConfig:
    """
    Load configuration from `path`.

    With no path, ./banwatch.toml is used when present; otherwise defaults
    apply, relative to the current directory.
    """
    import tomllib

    if path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_NAME
        if not candidate.is_file():
            return WatchConfig(directory=Path.cwd() / "logs")
        path = candidate

    data = tomllib.loads(path.read_text(encoding="utf-8"))
    return parse_config(data, path.resolve().parent)
