"""Sign, submit and confirm a list of instructions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.transaction import VersionedTransaction

if TYPE_CHECKING:
    from .rpc import RpcConnection

logger = logging.getLogger(__name__)


def send_instructions(
    connection: "RpcConnection",
    instructions: Sequence[Instruction],
    payer: Keypair,
    signers: Sequence[Keypair] = (),
) -> str:
    """Send ``instructions`` as one transaction paid by ``payer``.

    Returns the transaction signature once the cluster reports it confirmed.
    Confirmation gives up when the blockhash the transaction was built on
    expires.
    """
    # payer first, then any extra signers not already present
    keypairs = [payer]
    for signer in signers:
        if signer.pubkey() not in {kp.pubkey() for kp in keypairs}:
            keypairs.append(signer)

    blockhash, last_valid_block_height = connection.get_latest_blockhash()
    message = Message.new_with_blockhash(list(instructions), payer.pubkey(), blockhash)
    transaction = VersionedTransaction(message, keypairs)

    signature = connection.send_transaction(transaction)
    logger.debug("   Submitted transaction %s", signature)
    connection.confirm_transaction(signature, last_valid_block_height)
    return signature
