"""SPL token-program client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    AuthorityType,
    InitializeMintParams,
    MintToParams,
    SetAuthorityParams,
    create_associated_token_account,
    get_associated_token_address,
    initialize_mint,
    mint_to,
    set_authority,
)

from .base import TokenProgramClient
from .transactions import send_instructions

if TYPE_CHECKING:
    from .rpc import RpcConnection

logger = logging.getLogger(__name__)

MINT_ACCOUNT_SIZE = 82

AUTHORITY_TYPES = {
    "mint": AuthorityType.MINT_TOKENS,
    "freeze": AuthorityType.FREEZE_ACCOUNT,
}


class SplTokenClient(TokenProgramClient):
    def __init__(self, connection: "RpcConnection") -> None:
        self.connection = connection

    def _send(self, instructions, payer: Keypair, *signers: Keypair) -> str:
        return send_instructions(self.connection, instructions, payer, signers)

    def create_mint(
        self,
        payer: Keypair,
        mint_authority: Pubkey,
        freeze_authority: Optional[Pubkey],
        decimals: int,
    ) -> Pubkey:
        mint_keypair = Keypair()
        rent = self.connection.get_minimum_balance_for_rent_exemption(MINT_ACCOUNT_SIZE)
        instructions = [
            create_account(
                CreateAccountParams(
                    from_pubkey=payer.pubkey(),
                    to_pubkey=mint_keypair.pubkey(),
                    lamports=rent,
                    space=MINT_ACCOUNT_SIZE,
                    owner=TOKEN_PROGRAM_ID,
                )
            ),
            initialize_mint(
                InitializeMintParams(
                    decimals=decimals,
                    program_id=TOKEN_PROGRAM_ID,
                    mint=mint_keypair.pubkey(),
                    mint_authority=mint_authority,
                    freeze_authority=freeze_authority,
                )
            ),
        ]
        signature = self._send(instructions, payer, mint_keypair)
        logger.debug("   create_mint %s: %s", mint_keypair.pubkey(), signature)
        return mint_keypair.pubkey()

    def get_or_create_associated_account(
        self, payer: Keypair, mint: Pubkey, owner: Pubkey
    ) -> Pubkey:
        address = get_associated_token_address(owner, mint)
        if self.connection.get_account_info(address) is None:
            instruction = create_associated_token_account(payer.pubkey(), owner, mint)
            self._send([instruction], payer)
            logger.debug("   Created token account %s for %s", address, owner)
        return address

    def mint_to(
        self,
        payer: Keypair,
        mint: Pubkey,
        destination: Pubkey,
        authority: Keypair,
        amount: int,
    ) -> str:
        instruction = mint_to(
            MintToParams(
                program_id=TOKEN_PROGRAM_ID,
                mint=mint,
                dest=destination,
                mint_authority=authority.pubkey(),
                amount=amount,
            )
        )
        return self._send([instruction], payer, authority)

    def set_authority(
        self,
        payer: Keypair,
        mint: Pubkey,
        current_authority: Keypair,
        authority_type: str,
        new_authority: Optional[Pubkey] = None,
    ) -> str:
        try:
            kind = AUTHORITY_TYPES[authority_type]
        except KeyError:
            raise ValueError(f"Unknown authority type: {authority_type}") from None
        instruction = set_authority(
            SetAuthorityParams(
                program_id=TOKEN_PROGRAM_ID,
                account=mint,
                authority=kind,
                current_authority=current_authority.pubkey(),
                new_authority=new_authority,
            )
        )
        return self._send([instruction], payer, current_authority)
