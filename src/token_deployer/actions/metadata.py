"""Metadata action: create the Metaplex metadata account for the mint."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..config import TokenMetadata, load_token_metadata
from ..orchestrator.models import ExecutionContext, ExecutionPlan, PlanStep
from ..orchestrator.planner import build_metadata_plan
from ..orchestrator.prerequisites import (
    PrerequisiteCheck,
    credentials_present,
    mint_exists,
    network_healthy,
)
from .base import DeploymentAction, StepOutcome, shared_mint

logger = logging.getLogger(__name__)


class MetadataAction(DeploymentAction):
    name = "metadata"
    title = "Metadata Deployment"
    required_credentials = ("mint_authority", "metadata_authority")

    def __init__(
        self,
        config,
        metadata: Optional[TokenMetadata] = None,
        mint_address: Optional[str] = None,
    ) -> None:
        super().__init__(config, mint_address=mint_address)
        self._metadata = metadata

    @property
    def metadata(self) -> TokenMetadata:
        if self._metadata is None:
            self._metadata = load_token_metadata(self.config.token.metadata_path)
        return self._metadata

    def build_plan(self) -> ExecutionPlan:
        return build_metadata_plan(self.config, self.metadata, self.mint_address)

    def prerequisites(self) -> List[PrerequisiteCheck]:
        return [
            credentials_present(self.required_credentials),
            network_healthy(),
            mint_exists(),
        ]

    def run_step(self, step: PlanStep, context: ExecutionContext) -> StepOutcome:
        credentials = context.credentials
        result = context.clients.metadata.create_metadata_account_v3(
            payer=credentials["metadata_authority"],
            mint=shared_mint(context),
            mint_authority=credentials["mint_authority"],
            update_authority=credentials["metadata_authority"],
            metadata=self.metadata,
        )
        context.shared["metadata_account"] = str(result.metadata_account)
        logger.info("   Metadata Account: %s", result.metadata_account)
        return StepOutcome(
            signature=result.signature,
            details={"metadata_account": str(result.metadata_account), "uri": self.metadata.uri},
        )

    def record_details(self, context: ExecutionContext) -> Dict[str, Any]:
        details = super().record_details(context)
        details.update(
            {
                "metadata_account": context.shared.get("metadata_account"),
                "name": self.metadata.name,
                "symbol": self.metadata.symbol,
                "uri": self.metadata.uri,
                "update_authority": str(context.credentials["metadata_authority"].pubkey())
                if "metadata_authority" in context.credentials
                else None,
            }
        )
        return details
