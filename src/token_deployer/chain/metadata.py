"""Metaplex token-metadata client (CreateMetadataAccountV3)."""

from __future__ import annotations

import logging
import struct
from typing import TYPE_CHECKING, List, Optional

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from .base import MetadataAccountResult, MetadataProgramClient
from .transactions import send_instructions

if TYPE_CHECKING:
    from ..config import Creator, TokenMetadata
    from .rpc import RpcConnection

logger = logging.getLogger(__name__)

CREATE_METADATA_ACCOUNT_V3 = 33

# On-chain limits of the metadata program
MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200
MAX_CREATORS = 5


def _borsh_string(value: str) -> bytes:
    encoded = value.encode("utf-8")
    return struct.pack("<I", len(encoded)) + encoded


def _borsh_bool(value: bool) -> bytes:
    return b"\x01" if value else b"\x00"


def _encode_creators(creators: List["Creator"]) -> bytes:
    if not creators:
        return b"\x00"
    out = b"\x01" + struct.pack("<I", len(creators))
    for creator in creators:
        out += bytes(Pubkey.from_string(creator.address))
        out += _borsh_bool(creator.verified)
        out += struct.pack("<B", creator.share)
    return out


def _encode_collection(collection: Optional[str]) -> bytes:
    if not collection:
        return b"\x00"
    return b"\x01" + _borsh_bool(False) + bytes(Pubkey.from_string(collection))


def validate_metadata(metadata: "TokenMetadata") -> None:
    if len(metadata.name.encode("utf-8")) > MAX_NAME_LENGTH:
        raise ValueError(f"Token name longer than {MAX_NAME_LENGTH} bytes")
    if len(metadata.symbol.encode("utf-8")) > MAX_SYMBOL_LENGTH:
        raise ValueError(f"Token symbol longer than {MAX_SYMBOL_LENGTH} bytes")
    if len(metadata.uri.encode("utf-8")) > MAX_URI_LENGTH:
        raise ValueError(f"Metadata URI longer than {MAX_URI_LENGTH} bytes")
    if len(metadata.creators) > MAX_CREATORS:
        raise ValueError(f"At most {MAX_CREATORS} creators are allowed")
    if metadata.creators and sum(c.share for c in metadata.creators) != 100:
        raise ValueError("Creator shares must add up to 100")


def encode_create_metadata_v3(metadata: "TokenMetadata") -> bytes:
    """Instruction data: discriminator, DataV2, is_mutable, collection_details."""
    data = struct.pack("<B", CREATE_METADATA_ACCOUNT_V3)
    data += _borsh_string(metadata.name)
    data += _borsh_string(metadata.symbol)
    data += _borsh_string(metadata.uri)
    data += struct.pack("<H", metadata.seller_fee_basis_points)
    data += _encode_creators(metadata.creators)
    data += _encode_collection(metadata.collection)
    data += b"\x00"  # uses
    data += _borsh_bool(metadata.is_mutable)
    data += b"\x00"  # collection_details
    return data


def find_metadata_address(mint: Pubkey, program_id: Pubkey) -> Pubkey:
    address, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(program_id), bytes(mint)], program_id
    )
    return address


def build_create_metadata_instruction(
    program_id: Pubkey,
    mint: Pubkey,
    mint_authority: Pubkey,
    payer: Pubkey,
    update_authority: Pubkey,
    metadata: "TokenMetadata",
) -> Instruction:
    accounts = [
        AccountMeta(find_metadata_address(mint, program_id), False, True),
        AccountMeta(mint, False, False),
        AccountMeta(mint_authority, True, False),
        AccountMeta(payer, True, True),
        AccountMeta(update_authority, True, False),
        AccountMeta(SYSTEM_PROGRAM_ID, False, False),
    ]
    return Instruction(program_id, encode_create_metadata_v3(metadata), accounts)


class MetaplexMetadataClient(MetadataProgramClient):
    def __init__(
        self,
        connection: "RpcConnection",
        program_id: Pubkey,
    ) -> None:
        self.connection = connection
        self.program_id = program_id

    def create_metadata_account_v3(
        self,
        payer: Keypair,
        mint: Pubkey,
        mint_authority: Keypair,
        update_authority: Keypair,
        metadata: "TokenMetadata",
    ) -> MetadataAccountResult:
        validate_metadata(metadata)
        instruction = build_create_metadata_instruction(
            self.program_id,
            mint,
            mint_authority.pubkey(),
            payer.pubkey(),
            update_authority.pubkey(),
            metadata,
        )
        signature = send_instructions(
            self.connection,
            [instruction],
            payer,
            [mint_authority, update_authority],
        )
        metadata_account = find_metadata_address(mint, self.program_id)
        logger.debug("   Metadata account %s created: %s", metadata_account, signature)
        return MetadataAccountResult(metadata_account=metadata_account, signature=signature)
