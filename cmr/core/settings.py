"""Process-level settings read from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

__all__ = ["Settings", "load_settings"]


@dataclass(frozen=True, slots=True)
class Settings:
    """External tools the resource shells out to."""

    helm: str = "helm"
    gpg: str = "gpg"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read tool overrides (``HELM_BIN``, ``GPG_BIN``) from the environment."""
    env = os.environ if environ is None else environ
    return Settings(
        helm=env.get("HELM_BIN", "").strip() or "helm",
        gpg=env.get("GPG_BIN", "").strip() or "gpg",
    )
