"""Keypair loading from Solana CLI keypair files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Mapping

from solders.keypair import Keypair

from ..errors import CredentialError
from ..paths import credential_file

logger = logging.getLogger(__name__)


def load_keypair(path: Path) -> Keypair:
    """Read a JSON array of 64 secret-key bytes into a keypair."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CredentialError(f"Failed to read keypair {path}: {exc}") from exc
    if not isinstance(data, list) or not all(
        isinstance(value, int) and 0 <= value <= 255 for value in data
    ):
        raise CredentialError(f"Keypair {path} must be a JSON array of byte values")
    try:
        return Keypair.from_bytes(bytes(data))
    except ValueError as exc:
        raise CredentialError(f"Keypair {path} is not a valid secret key: {exc}") from exc


def load_credentials(directory: Path, required_names: Iterable[str]) -> Dict[str, Keypair]:
    """Load each named keypair that exists under ``directory``.

    Missing files are left out of the result rather than raising; actions
    check for the ones they need with :func:`require_credentials`. A file that
    exists but cannot be parsed raises :class:`CredentialError`.
    """
    directory = Path(directory)
    credentials: Dict[str, Keypair] = {}
    for name in sorted(set(required_names)):
        path = credential_file(directory, name)
        if not path.is_file():
            logger.debug("   %s: no keypair at %s", name, path)
            continue
        credentials[name] = load_keypair(path)
        logger.debug("   %s: %s", name, credentials[name].pubkey())
    return credentials


def require_credentials(credentials: Mapping[str, Keypair], names: Iterable[str]) -> None:
    missing = [name for name in names if name not in credentials]
    if missing:
        raise CredentialError(
            "Missing required keypair(s): " + ", ".join(missing),
            names=missing,
        )
