"""Versioned transaction assembly with a single authority signature.

The assembler walks one envelope through
EMPTY -> INSTRUCTIONS_SET -> COMPILED -> PARTIALLY_SIGNED -> SERIALIZED.
It signs with the authority key only; the fee payer's slot is left as
`Signature.default()` for the paying party to fill (see `handoff`). It never
submits and never retries.
"""

import base64
import logging
from typing import List, Optional, Sequence

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .errors import AssemblyStageError, ConfigurationError, InvalidSignerError
from .types import AssemblyStage

logger = logging.getLogger(__name__)


class TransactionAssembler:
    """Compiles, partially signs and serializes one versioned transaction.

    Example:
        ```python
        assembler = TransactionAssembler(collection_authority)
        blob = assembler.assemble(result.instructions, payer, result.lookup_tables, blockhash)
        ```
    """

    def __init__(self, authority: Optional[Keypair]):
        """Create an assembler for the given authority key.

        Args:
            authority: The service-held key that signs the envelope

        Raises:
            ConfigurationError: If no authority key was supplied
        """
        if authority is None:
            raise ConfigurationError("COLLECTION_AUTH")
        self._authority = authority
        self._stage = AssemblyStage.EMPTY
        self._instructions: List[Instruction] = []
        self._fee_payer: Optional[Pubkey] = None
        self._lookup_tables: List[AddressLookupTableAccount] = []
        self._message: Optional[MessageV0] = None
        self._transaction: Optional[VersionedTransaction] = None
        self._serialized: Optional[bytes] = None

    @property
    def stage(self) -> AssemblyStage:
        return self._stage

    @property
    def authority(self) -> Pubkey:
        return self._authority.pubkey()

    @property
    def message(self) -> Optional[MessageV0]:
        return self._message

    @property
    def transaction(self) -> Optional[VersionedTransaction]:
        return self._transaction

    def _require(self, operation: str, stage: AssemblyStage) -> None:
        if self._stage is not stage:
            raise AssemblyStageError(operation, self._stage.value)

    def set_instructions(
        self,
        instructions: Sequence[Instruction],
        fee_payer: Pubkey,
        lookup_tables: Sequence[AddressLookupTableAccount] = (),
    ) -> "TransactionAssembler":
        """Set the ordered instructions, fee payer and lookup tables."""
        self._require("set instructions", AssemblyStage.EMPTY)
        if not instructions:
            raise ValueError("At least one instruction is required")
        self._instructions = list(instructions)
        self._fee_payer = fee_payer
        self._lookup_tables = list(lookup_tables)
        self._stage = AssemblyStage.INSTRUCTIONS_SET
        return self

    def compile(self, recent_blockhash: Optional[Hash]) -> MessageV0:
        """Compile a v0 message against a freshly fetched blockhash.

        Raises:
            AssemblyStageError: If instructions are not set or no blockhash was fetched
        """
        self._require("compile", AssemblyStage.INSTRUCTIONS_SET)
        if recent_blockhash is None:
            raise AssemblyStageError("compile without a recent blockhash", self._stage.value)

        self._message = MessageV0.try_compile(
            self._fee_payer,
            self._instructions,
            self._lookup_tables,
            recent_blockhash,
        )
        self._stage = AssemblyStage.COMPILED
        logger.debug(
            f"Compiled message with {len(self._message.account_keys)} static keys and "
            f"{len(self._message.address_table_lookups)} table lookups"
        )
        return self._message

    def sign(self) -> VersionedTransaction:
        """Fill the authority's signature slot and leave all others empty.

        Raises:
            InvalidSignerError: If the authority is not a required signer
        """
        self._require("sign", AssemblyStage.COMPILED)
        message = self._message
        required = message.header.num_required_signatures
        signer_keys = list(message.account_keys)[:required]

        authority = self._authority.pubkey()
        if authority not in signer_keys:
            raise InvalidSignerError(str(authority))

        signatures = [Signature.default() for _ in range(required)]
        signatures[signer_keys.index(authority)] = self._authority.sign_message(
            to_bytes_versioned(message)
        )

        self._transaction = VersionedTransaction.populate(message, signatures)
        self._stage = AssemblyStage.PARTIALLY_SIGNED
        logger.info(f"Signed as {authority}; {required - 1} signature slot(s) left for the fee payer")
        return self._transaction

    def serialize(self) -> bytes:
        """Serialize the partially signed transaction. Terminal."""
        if self._stage is AssemblyStage.SERIALIZED:
            return self._serialized
        self._require("serialize", AssemblyStage.PARTIALLY_SIGNED)
        self._serialized = bytes(self._transaction)
        self._stage = AssemblyStage.SERIALIZED
        return self._serialized

    def to_base64(self) -> str:
        """Serialize and encode for transport over a text channel."""
        return base64.b64encode(self.serialize()).decode("ascii")

    def assemble(
        self,
        instructions: Sequence[Instruction],
        fee_payer: Pubkey,
        lookup_tables: Sequence[AddressLookupTableAccount],
        recent_blockhash: Optional[Hash],
    ) -> str:
        """Run every stage in order and return the base64 envelope."""
        self.set_instructions(instructions, fee_payer, lookup_tables)
        self.compile(recent_blockhash)
        self.sign()
        return self.to_base64()
