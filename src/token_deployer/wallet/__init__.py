"""Wallet (keypair) helpers."""

from .keypairs import load_credentials, load_keypair, require_credentials

__all__ = ["load_credentials", "load_keypair", "require_credentials"]
