"""Instruction composition for delegated-payment mints.

The composer orders the mint and the optional token transfer, resolves the
lookup table that compresses their account keys, and reports whether the
result fits in one transaction. The size check is advisory: it is logged and
returned, never enforced.
"""

import logging
from typing import List, Optional, Tuple

from solana.rpc.async_api import AsyncClient
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey

from .accounts import fetch_lookup_table, find_token_account
from .constants import BUBBLEGUM_PROGRAM_ID, PACKET_DATA_SIZE
from .instructions import (
    build_mint_to_collection_v1_instruction,
    build_token_payment_instruction,
)
from .types import ComposeResult, MintSpec, TokenPayment
from .utils import estimate_transaction_size

logger = logging.getLogger(__name__)


def measure_instructions(
    instructions: List[Instruction],
    payer: Pubkey,
    lookup_tables: List[AddressLookupTableAccount],
    max_size: int = PACKET_DATA_SIZE,
) -> Tuple[bool, int]:
    """Compile a provisional v0 message and estimate its transaction size.

    A placeholder blockhash is used; it has the same encoded length as a real one.

    Returns:
        (fits_in_one_transaction, estimated_size)
    """
    message = MessageV0.try_compile(payer, instructions, lookup_tables, Hash.default())
    size = estimate_transaction_size(
        len(to_bytes_versioned(message)), message.header.num_required_signatures
    )
    return size <= max_size, size


class InstructionComposer:
    """Builds the ordered instruction set for a mint with an optional payment."""

    def __init__(
        self,
        connection: AsyncClient,
        program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
        max_transaction_size: int = PACKET_DATA_SIZE,
    ):
        """Initialize the composer.

        Args:
            connection: Solana RPC async client used to resolve token accounts and LUTs
            program_id: Bubblegum program ID
            max_transaction_size: Network ceiling for one serialized transaction
        """
        self.connection = connection
        self.program_id = program_id
        self.max_transaction_size = max_transaction_size

    async def compose(
        self,
        mint_spec: MintSpec,
        payment: Optional[TokenPayment] = None,
        lut_address: Optional[Pubkey] = None,
    ) -> ComposeResult:
        """Compose the mint, then the payment transfer, then attach the LUT.

        Raises:
            MissingTokenAccountError: If payer or payee has no token account for the mint
            LookupTableNotFoundError: If `lut_address` cannot be resolved
        """
        instructions = [build_mint_to_collection_v1_instruction(mint_spec, self.program_id)]

        if payment is not None:
            instructions.append(await self.build_payment_instruction(payment))

        lookup_tables: List[AddressLookupTableAccount] = []
        if lut_address is not None:
            lookup_tables.append(await fetch_lookup_table(self.connection, lut_address))
            logger.info(f"Added lookup table {lut_address} to transaction")

        fits, size = measure_instructions(
            instructions, mint_spec.payer, lookup_tables, self.max_transaction_size
        )
        if fits:
            logger.info(f"Transaction fits in one packet ({size}/{self.max_transaction_size} bytes)")
        else:
            logger.warning(
                f"Transaction may not fit in one packet ({size}/{self.max_transaction_size} bytes)"
            )

        return ComposeResult(
            instructions=instructions,
            lookup_tables=lookup_tables,
            fits_in_one_transaction=fits,
            estimated_size=size,
        )

    async def build_payment_instruction(self, payment: TokenPayment) -> Instruction:
        """Resolve both token accounts and build the transfer.

        No token account is created; both must already exist.
        """
        destination = await find_token_account(self.connection, payment.payee, payment.mint)
        source = await find_token_account(self.connection, payment.payer, payment.mint)
        return build_token_payment_instruction(payment, source, destination)
