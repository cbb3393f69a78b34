"""Main client for cnft-cli: compressed NFT mints, updates, trees and lookup tables."""

import logging
from typing import List, Optional, Sequence

import base58
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed, Finalized
from solana.rpc.types import TxOpts
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from spl.token.async_client import AsyncToken
from spl.token.core import MintInfo

from .api.client import DasApiClient
from .api.uploader import NftStorageUploader
from .program.accounts import (
    fetch_lookup_table,
    fetch_merkle_tree_header,
    fetch_mint,
    find_token_account,
)
from .program.assembler import TransactionAssembler
from .program.composer import InstructionComposer
from .program.constants import (
    BUBBLEGUM_PROGRAM_ID,
    CNFT_LUT_ADDRESSES,
    DEFAULT_MAX_BUFFER_SIZE,
    DEFAULT_MAX_DEPTH,
)
from .program.errors import ConfigurationError
from .program.instructions import (
    build_allocate_tree_instruction,
    build_create_collection_mint_instructions,
    build_create_lookup_table_instruction,
    build_create_master_edition_v3_instruction,
    build_create_metadata_account_v3_instruction,
    build_create_tree_instruction,
    build_extend_lookup_table_instruction,
    build_update_metadata_instruction,
    get_merkle_tree_size,
)
from .program.metadata import (
    build_collection_json,
    build_collection_metadata,
    build_mint_metadata,
    build_nft_json,
    metadata_args_from_asset,
    validate_metadata_args,
    verify_leaf_hashes,
)
from .program.pda import get_lookup_table_address
from .program.types import (
    CollectionResult,
    CreateCollectionArgs,
    CreateNftArgs,
    ImageSource,
    LookupTableResult,
    MerkleTreeHeader,
    MerkleTreeResult,
    MintSpec,
    NftCollection,
    TokenPayment,
    UpdateArgs,
    UpdateNftArgs,
)

logger = logging.getLogger(__name__)


class CnftClient:
    """Async client for compressed NFT operations.

    Reads go through `das`; uploads through `uploader`. Both are optional
    and only required by the operations that use them.
    """

    def __init__(
        self,
        connection: AsyncClient,
        das: Optional[DasApiClient] = None,
        uploader: Optional[NftStorageUploader] = None,
        program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
    ):
        """Initialize the client.

        Args:
            connection: Solana RPC async client
            das: DAS read client, needed by update_nft
            uploader: Image and JSON uploader, needed by the mint operations
            program_id: Bubblegum program ID
        """
        self.connection = connection
        self.das = das
        self.uploader = uploader
        self.program_id = program_id
        self.composer = InstructionComposer(connection, program_id)

    # =========================================================================
    # Account Fetchers
    # =========================================================================

    async def get_lookup_table(self, address: Pubkey) -> AddressLookupTableAccount:
        return await fetch_lookup_table(self.connection, address)

    async def get_mint(self, mint: Pubkey) -> MintInfo:
        return await fetch_mint(self.connection, mint)

    async def get_merkle_tree(self, merkle_tree: Pubkey) -> MerkleTreeHeader:
        return await fetch_merkle_tree_header(self.connection, merkle_tree)

    async def get_token_account(self, owner: Pubkey, mint: Pubkey) -> Pubkey:
        return await find_token_account(self.connection, owner, mint)

    # =========================================================================
    # Metadata upload
    # =========================================================================

    def _require_uploader(self) -> NftStorageUploader:
        if self.uploader is None:
            raise ConfigurationError("NFT_STORAGE_API_KEY")
        return self.uploader

    async def resolve_image(self, image: Optional[ImageSource]) -> str:
        """Return the image URI, uploading the file or bytes when needed."""
        if image is None:
            return ""
        if image.is_uri:
            return image.path or ""
        if image.data is not None:
            return await self._require_uploader().upload_bytes(image.data, "image/png")
        if image.path:
            return await self._require_uploader().upload_file(image.path)
        raise ValueError("Invalid image source: no path, URI or data")

    async def upload_nft_metadata(self, args: CreateNftArgs, collection: NftCollection) -> str:
        """Upload the image and the off-chain JSON; return the JSON URI."""
        uploader = self._require_uploader()
        image_uri = await self.resolve_image(args.image)
        document = build_nft_json(collection, args.name, image_uri, args.attributes, args.creators)
        uri = await uploader.upload_json(document)
        logger.info(f"NFT metadata uploaded to {uri}")
        return uri

    # =========================================================================
    # Mints
    # =========================================================================

    async def _mint_spec(
        self,
        authority: Pubkey,
        payer: Pubkey,
        args: CreateNftArgs,
        collection: NftCollection,
        merkle_tree: Pubkey,
    ) -> MintSpec:
        # fail before uploading if the tree does not exist
        await self.get_merkle_tree(merkle_tree)
        uri = await self.upload_nft_metadata(args, collection)
        metadata = build_mint_metadata(collection, args.name, uri, args.creators)
        validate_metadata_args(metadata)
        return MintSpec(
            leaf_owner=args.mint_to or authority,
            merkle_tree=merkle_tree,
            collection_mint=collection.address,
            payer=payer,
            collection_authority=authority,
            metadata=metadata,
        )

    async def mint_nft_with_token_payment(
        self,
        authority: Keypair,
        payer: Pubkey,
        payment: TokenPayment,
        args: CreateNftArgs,
        collection: NftCollection,
        merkle_tree: Pubkey,
        lut_address: Optional[Pubkey] = None,
    ) -> str:
        """Build a mint paid for with an SPL token transfer.

        The collection authority signs; `payer` pays the fee and the token
        amount and must add their own signature before submitting.

        Returns:
            The partially signed transaction, base64 encoded
        """
        assembler = TransactionAssembler(authority)
        spec = await self._mint_spec(authority.pubkey(), payer, args, collection, merkle_tree)
        result = await self.composer.compose(spec, payment, lut_address)
        blockhash = await self._get_blockhash()
        encoded = assembler.assemble(result.instructions, payer, result.lookup_tables, blockhash)
        logger.info(f"Mint transaction ready for fee payer {payer}")
        return encoded

    async def mint_nft(
        self,
        authority: Keypair,
        args: CreateNftArgs,
        collection: NftCollection,
        merkle_tree: Pubkey,
        lut_address: Optional[Pubkey] = None,
    ) -> Signature:
        """Mint with the collection authority as fee payer and submit."""
        assembler = TransactionAssembler(authority)
        spec = await self._mint_spec(
            authority.pubkey(), authority.pubkey(), args, collection, merkle_tree
        )
        result = await self.composer.compose(spec, None, lut_address)
        assembler.set_instructions(result.instructions, authority.pubkey(), result.lookup_tables)
        assembler.compile(await self._get_blockhash())
        transaction = assembler.sign()
        return await self.send_transaction(transaction)

    # =========================================================================
    # Updates
    # =========================================================================

    async def update_nft(
        self,
        authority: Keypair,
        args: UpdateNftArgs,
        collection_mint: Optional[Pubkey] = None,
        lut_address: Optional[Pubkey] = None,
    ) -> Signature:
        """Update the name and/or uri of a compressed NFT.

        The current leaf is rebuilt from DAS and checked against the indexed
        hashes before the update is signed.
        """
        if self.das is None:
            raise ConfigurationError("DAS endpoint")
        if args.name is None and args.uri is None:
            raise ValueError("Nothing to update: name or uri is required")

        found = await self.das.get_asset_with_proof(str(args.asset_id))
        asset, proof = found.asset, found.proof
        current = metadata_args_from_asset(asset.raw)
        verify_leaf_hashes(asset.raw, current)

        merkle_tree = Pubkey.from_string(proof.tree_id)
        header = await self.get_merkle_tree(merkle_tree)
        nodes = [Pubkey.from_string(node) for node in proof.proof]
        if header.canopy_depth:
            nodes = nodes[: len(nodes) - header.canopy_depth]

        leaf_owner = Pubkey.from_string(asset.ownership.owner)
        leaf_delegate = (
            Pubkey.from_string(asset.ownership.delegate) if asset.ownership.delegate else leaf_owner
        )
        ix = build_update_metadata_instruction(
            authority=authority.pubkey(),
            payer=authority.pubkey(),
            merkle_tree=merkle_tree,
            leaf_owner=leaf_owner,
            leaf_delegate=leaf_delegate,
            root=base58.b58decode(proof.root),
            nonce=asset.compression.leaf_id,
            index=asset.compression.leaf_id,
            current_metadata=current,
            update_args=UpdateArgs(name=args.name, uri=args.uri),
            proof=nodes,
            collection_mint=collection_mint,
            program_id=self.program_id,
        )

        lookup_tables = []
        if lut_address is not None:
            lookup_tables.append(await self.get_lookup_table(lut_address))
            logger.info(f"Added lookup table {lut_address} to transaction")

        return await self.send_instructions([ix], authority, [], lookup_tables)

    # =========================================================================
    # Collections
    # =========================================================================

    async def upload_collection_metadata(self, args: CreateCollectionArgs) -> str:
        """Upload the collection image and JSON; return the JSON URI."""
        uploader = self._require_uploader()
        image_uri = await self.resolve_image(args.image)
        uri = await uploader.upload_json(build_collection_json(args, image_uri))
        logger.info(f"Collection metadata uploaded to {uri}")
        return uri

    async def create_collection(
        self,
        authority: Keypair,
        args: CreateCollectionArgs,
        lut_address: Optional[Pubkey] = None,
    ) -> CollectionResult:
        """Create a sized Token Metadata collection NFT held by `authority`.

        One transaction creates the mint, mints its single token, and writes
        the metadata and master edition. When `lut_address` is given the new
        mint is appended to that table.
        """
        owner = authority.pubkey()
        # fail before uploading on names and fees the program would reject
        validate_metadata_args(build_collection_metadata(args, "", owner))
        uri = await self.upload_collection_metadata(args)
        metadata = build_collection_metadata(args, uri, owner)
        validate_metadata_args(metadata)

        mint = Keypair()
        rent = await AsyncToken.get_min_balance_rent_for_exempt_for_mint(self.connection)
        instructions = build_create_collection_mint_instructions(owner, mint.pubkey(), owner, rent)
        instructions.append(
            build_create_metadata_account_v3_instruction(
                mint=mint.pubkey(),
                mint_authority=owner,
                payer=owner,
                update_authority=owner,
                metadata=metadata,
            )
        )
        instructions.append(
            build_create_master_edition_v3_instruction(
                mint=mint.pubkey(),
                update_authority=owner,
                mint_authority=owner,
                payer=owner,
            )
        )
        signature = await self.send_instructions(instructions, authority, [mint])
        logger.info(f"Collection created: {mint.pubkey()}")

        if lut_address is not None:
            await self.extend_lut(authority, [mint.pubkey()], lut=lut_address)
            logger.info("LUT extended with collection mint")

        return CollectionResult(
            collection_mint=mint.pubkey(), signature=signature, metadata_uri=uri
        )

    # =========================================================================
    # Lookup tables
    # =========================================================================

    async def create_lut(self, authority: Keypair) -> LookupTableResult:
        """Create an empty lookup table owned by `authority`."""
        return await self.create_lut_with_addresses(authority, [])

    async def create_lut_with_addresses(
        self, authority: Keypair, addresses: Sequence[Pubkey]
    ) -> LookupTableResult:
        """Create a lookup table and seed it in the same transaction."""
        slot = await self._get_slot()
        create_ix, lut_address = build_create_lookup_table_instruction(
            authority.pubkey(), authority.pubkey(), slot
        )
        instructions = [create_ix]
        if addresses:
            instructions.append(
                build_extend_lookup_table_instruction(
                    lut_address, authority.pubkey(), list(addresses)
                )
            )
        signature = await self.send_instructions(instructions, authority)
        logger.info(f"LUT created at {lut_address} with {len(addresses)} addresses")
        return LookupTableResult(lut_address=lut_address, signature=signature, slot=slot)

    async def create_cnft_lut(self, authority: Keypair) -> LookupTableResult:
        """Create a lookup table seeded with the programs every cNFT mint touches."""
        return await self.create_lut_with_addresses(authority, CNFT_LUT_ADDRESSES)

    async def extend_lut(
        self,
        authority: Keypair,
        addresses: Sequence[Pubkey],
        lut: Optional[Pubkey] = None,
        slot: Optional[int] = None,
    ) -> LookupTableResult:
        """Append addresses to a lookup table.

        The table is `lut` when given, otherwise the one `authority` created at `slot`.
        """
        if lut is None and slot is None:
            raise ValueError("You must provide either the lut or the slot")
        if not addresses:
            raise ValueError("At least one address is required")
        if lut is None:
            lut, _ = get_lookup_table_address(authority.pubkey(), slot)

        ix = build_extend_lookup_table_instruction(lut, authority.pubkey(), list(addresses))
        signature = await self.send_instructions([ix], authority)
        logger.info(f"LUT {lut} extended with {len(addresses)} addresses")
        return LookupTableResult(lut_address=lut, signature=signature, slot=slot)

    # =========================================================================
    # Merkle trees
    # =========================================================================

    async def create_merkle_tree(
        self,
        authority: Keypair,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE,
        lut_address: Optional[Pubkey] = None,
        canopy_depth: int = 0,
    ) -> MerkleTreeResult:
        """Allocate a concurrent merkle tree and register it with Bubblegum.

        When `lut_address` is given the new tree is appended to that table.
        """
        merkle_tree = Keypair()
        space = get_merkle_tree_size(max_depth, max_buffer_size, canopy_depth)
        rent = await self.connection.get_minimum_balance_for_rent_exemption(space)

        instructions = [
            build_allocate_tree_instruction(
                authority.pubkey(), merkle_tree.pubkey(), rent.value, space
            ),
            build_create_tree_instruction(
                payer=authority.pubkey(),
                tree_creator=authority.pubkey(),
                merkle_tree=merkle_tree.pubkey(),
                max_depth=max_depth,
                max_buffer_size=max_buffer_size,
                program_id=self.program_id,
            ),
        ]
        signature = await self.send_instructions(instructions, authority, [merkle_tree])
        logger.info(f"Merkle tree created: {merkle_tree.pubkey()} ({space} bytes)")

        if lut_address is not None:
            await self.extend_lut(authority, [merkle_tree.pubkey()], lut=lut_address)
            logger.info("LUT extended with merkle tree")

        return MerkleTreeResult(merkle_tree_address=merkle_tree.pubkey(), signature=signature)

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_instructions(
        self,
        instructions: List[Instruction],
        payer: Keypair,
        signers: Sequence[Keypair] = (),
        lookup_tables: Sequence[AddressLookupTableAccount] = (),
    ) -> Signature:
        """Compile, sign with `payer` and `signers`, submit and confirm."""
        message = MessageV0.try_compile(
            payer.pubkey(), instructions, list(lookup_tables), await self._get_blockhash()
        )
        transaction = VersionedTransaction(message, [payer, *signers])
        return await self.send_transaction(transaction)

    async def send_transaction(self, transaction: VersionedTransaction) -> Signature:
        """Submit a fully signed transaction and wait for confirmation."""
        response = await self.connection.send_raw_transaction(
            bytes(transaction), opts=TxOpts(preflight_commitment=Confirmed)
        )
        signature = response.value
        await self.connection.confirm_transaction(signature, commitment=Confirmed)
        logger.info(f"Transaction confirmed: {signature}")
        return signature

    async def _get_blockhash(self) -> Hash:
        """Get the latest blockhash."""
        response = await self.connection.get_latest_blockhash()
        return response.value.blockhash

    async def _get_slot(self) -> int:
        response = await self.connection.get_slot(commitment=Finalized)
        return response.value
