"""token-deployer: configuration-driven SPL token deployment for Solana."""

__version__ = "0.1.0"
