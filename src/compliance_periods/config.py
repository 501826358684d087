from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Final

import os

from compliance_periods.policy import Policy


@dataclass(frozen=True)
class Settings:
    strict_periods: bool
    first_year: int
    log_level: str

    def policy(self) -> Policy:
        return Policy(strict=self.strict_periods)


_ENV_STRICT: Final[str] = "PERIODS_STRICT"
_ENV_FIRST_YEAR: Final[str] = "PERIODS_FIRST_YEAR"
_ENV_LOG_LEVEL: Final[str] = "LOG_LEVEL"

DEFAULT_FIRST_YEAR: Final[int] = 2025
MAX_YEARS_BACK: Final[int] = 5

_TRUE_VALUES: Final[set[str]] = {"1", "true", "yes", "on"}
_FALSE_VALUES: Final[set[str]] = {"0", "false", "no", "off", ""}


def _parse_dotenv(path: Path) -> dict[str, str]:
    """
    Minimal .env parser:
    - KEY=VALUE pairs
    - ignores blanks and lines starting with '#'
    - strips surrounding quotes on VALUE
    """
    data: dict[str, str] = {}
    if not path.exists():
        return data
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip().strip("'").strip('"')
        if k:
            data[k] = v
    return data


def _default_dotenv_path() -> Path:
    return Path.cwd() / ".env"


def load_dotenv_into_env(dotenv_path: Path | None = None) -> None:
    """Copy `.env` values into os.environ without overriding variables that are already set."""
    for k, v in _parse_dotenv(dotenv_path or _default_dotenv_path()).items():
        os.environ.setdefault(k, v)


def _parse_bool(name: str, value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise RuntimeError(f"Invalid boolean for {name}: {value!r}")


def load_settings(dotenv_path: Path | None = None) -> Settings:
    """
    Load settings from environment variables, falling back to `.env`, then defaults.
    """
    dotenv = _parse_dotenv(dotenv_path or _default_dotenv_path())

    def get(name: str) -> str | None:
        return os.environ.get(name) or dotenv.get(name)

    strict = _parse_bool(_ENV_STRICT, get(_ENV_STRICT) or "")

    raw_year = get(_ENV_FIRST_YEAR) or str(DEFAULT_FIRST_YEAR)
    try:
        first_year = int(raw_year)
    except ValueError as e:
        raise RuntimeError(f"Invalid {_ENV_FIRST_YEAR}: {raw_year!r}") from e

    log_level = (get(_ENV_LOG_LEVEL) or "WARNING").upper()

    return Settings(strict_periods=strict, first_year=first_year, log_level=log_level)


def available_years(settings: Settings, today: date) -> list[int]:
    """Years offered by period selectors, newest first."""
    start = max(settings.first_year, today.year - MAX_YEARS_BACK)
    return list(range(today.year, start - 1, -1))
