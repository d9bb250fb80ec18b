"""Default locations, relative to the working directory.

- metadata/deployment-config.json   # deployment configuration
- metadata/token-metadata.json      # off-chain token metadata
- keypairs/                         # Solana CLI keypair files
- deployments/                      # one JSON record per run
"""

from pathlib import Path

METADATA_DIR = Path("metadata")
DEFAULT_CONFIG_PATH = METADATA_DIR / "deployment-config.json"
DEFAULT_METADATA_PATH = METADATA_DIR / "token-metadata.json"
KEYPAIR_DIR = Path("keypairs")
DEPLOYMENTS_DIR = Path("deployments")


def credential_file(directory: Path, name: str) -> Path:
    """Map a credential name such as ``mint_authority`` to ``mint-authority.json``."""
    return Path(directory) / f"{name.replace('_', '-')}.json"
