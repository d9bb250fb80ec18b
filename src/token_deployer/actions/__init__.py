"""Deployment actions and their factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import ConfigError
from .base import DeploymentAction, StepOutcome
from .liquidity import LiquidityAction
from .metadata import MetadataAction
from .mint import MintAction
from .revoke import RevokeAction

if TYPE_CHECKING:
    from ..config import DeploymentConfig

ACTIONS = {
    MintAction.name: MintAction,
    MetadataAction.name: MetadataAction,
    LiquidityAction.name: LiquidityAction,
    RevokeAction.name: RevokeAction,
}


def create_action(name: str, config: "DeploymentConfig", **options: Any) -> DeploymentAction:
    """Instantiate the action registered under ``name``.

    Raises:
        ConfigError: If ``name`` is not a known action
    """
    try:
        action_cls = ACTIONS[name]
    except KeyError:
        raise ConfigError(
            f"Unknown action: {name}. Supported actions: {', '.join(ACTIONS)}"
        ) from None
    return action_cls(config, **options)


__all__ = [
    "ACTIONS",
    "DeploymentAction",
    "LiquidityAction",
    "MetadataAction",
    "MintAction",
    "RevokeAction",
    "StepOutcome",
    "create_action",
]
