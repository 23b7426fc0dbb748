"""Runtime settings, read from the environment (and a .env file if present)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from ohgo import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, OHGOError


class MissingCredentialError(OHGOError):
    pass


@dataclass
class Settings:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    location_format: str = "coordinates"
    output_dir: Path = Path("snapshots")
    timeout: float = DEFAULT_TIMEOUT
    workers: int = 1


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[str] = None,
) -> Settings:
    """
    Build Settings from OHGO_* variables.

    When `environ` is given it is used as-is and no .env file is read.
    """
    if environ is None:
        load_dotenv(dotenv_path)
        environ = os.environ

    api_key = (environ.get("OHGO_APIKEY") or "").strip()
    if not api_key:
        raise MissingCredentialError("OHGO_APIKEY not found in environment variables")

    timeout = float(environ.get("OHGO_TIMEOUT") or DEFAULT_TIMEOUT)
    if timeout <= 0:
        raise ValueError(f"OHGO_TIMEOUT must be greater than 0, got {timeout}")
    workers = int(environ.get("OHGO_WORKERS") or 1)
    if workers < 1:
        raise ValueError(f"OHGO_WORKERS must be at least 1, got {workers}")

    return Settings(
        api_key=api_key,
        base_url=environ.get("OHGO_BASE_URL") or DEFAULT_BASE_URL,
        location_format=environ.get("OHGO_LOCATION_FORMAT") or "coordinates",
        output_dir=Path(environ.get("OHGO_OUTPUT_DIR") or "snapshots"),
        timeout=timeout,
        workers=workers,
    )
