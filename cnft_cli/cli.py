"""Command line interface for minting and managing compressed NFTs."""

import argparse
import asyncio
import contextlib
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import AsyncIterator, List, Optional, Sequence

from dotenv import load_dotenv
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey

from . import __version__
from .api.client import DasApiClient
from .api.error import ApiError
from .api.uploader import NftStorageUploader
from .client import CnftClient
from .config import CLUSTER_URLS, DEFAULT_CLUSTER, Settings
from .program.constants import DEFAULT_MAX_BUFFER_SIZE, DEFAULT_MAX_DEPTH
from .program.errors import CnftError
from .program.handoff import decode_transaction, sign_as
from .program.types import (
    CreateCollectionArgs,
    CreateNftArgs,
    ImageSource,
    MetadataConfig,
    TokenPayment,
    UpdateNftArgs,
)
from .program.utils import to_pubkey, ui_to_native
from .utils import load_json, load_keypair, write_to_file

logger = logging.getLogger(__name__)

NAME_HELP = (
    "NFT name (defaults to the config name). Also used as the off-chain JSON name,"
    " not the collection name"
)


def _pubkey(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as exc:  # pragma: no cover - argument validation
        raise argparse.ArgumentTypeError(f"invalid address: {value}") from exc


def _amount(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:  # pragma: no cover - argument validation
        raise argparse.ArgumentTypeError(f"invalid amount: {value}") from exc
    if amount <= 0:
        raise argparse.ArgumentTypeError("amount must be positive")
    return amount


def _address_file(path: str) -> List[Pubkey]:
    try:
        return [to_pubkey(address) for address in load_json(path)]
    except (OSError, ValueError, TypeError) as exc:  # pragma: no cover - argument validation
        raise argparse.ArgumentTypeError(f"cannot read addresses from {path}: {exc}") from exc


def _add_common(parser: argparse.ArgumentParser, require_wallet: bool) -> None:
    parser.add_argument(
        "-e",
        "--env",
        choices=sorted(CLUSTER_URLS),
        default=DEFAULT_CLUSTER,
        help="Solana cluster env name",
    )
    parser.add_argument(
        "-k", "--keypair", required=require_wallet, help="Solana wallet location"
    )
    parser.add_argument("-r", "--rpc", help="RPC URL")
    parser.add_argument("--das-url", help="DAS API URL (defaults to the RPC URL)")
    parser.add_argument(
        "--no-log",
        dest="log",
        action="store_false",
        help="Do not log the result to a file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def _add_paginate(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--no-paginate",
        dest="paginate",
        action="store_false",
        help="Do not paginate all results. Returns 1000 max.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cnft-cli", description="CLI for CNFT Minting and Management"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_lut = subparsers.add_parser("create-lut", help="Create a new LUT")
    _add_common(create_lut, require_wallet=True)
    create_lut.add_argument(
        "-a", "--addresses", type=_address_file, help="JSON file of addresses to add to the LUT"
    )
    create_lut.add_argument("--cnft", action="store_true", help="Create a CNFT LUT")

    extend_lut = subparsers.add_parser("extend-lut", help="Extend an existing LUT")
    _add_common(extend_lut, require_wallet=True)
    extend_lut.add_argument(
        "-a", "--addresses", type=_address_file, required=True, help="JSON file of addresses"
    )
    extend_lut.add_argument("-l", "--lut", type=_pubkey, help="LUT address")
    extend_lut.add_argument("-s", "--slot", type=int, help="Slot the LUT was created at")

    collection = subparsers.add_parser("create-collection", help="Create a new cNFT Collection")
    _add_common(collection, require_wallet=True)
    collection.add_argument("-n", "--name", required=True, help="Collection name")
    collection.add_argument("-s", "--symbol", required=True, help="Collection symbol")
    collection.add_argument("-d", "--description", default="", help="Collection description")
    collection.add_argument(
        "-f",
        "--seller-fee-basis-points",
        type=int,
        default=500,
        help="Seller fee basis points",
    )
    collection.add_argument("-i", "--image-path", required=True, help="Image path or URI")
    collection.add_argument("--external-url", default="", help="External URL")
    collection.add_argument("-l", "--lut", type=_pubkey, help="LUT to extend with the collection")

    tree = subparsers.add_parser("create-merkle-tree", help="Create a new Merkle Tree")
    _add_common(tree, require_wallet=True)
    tree.add_argument("-l", "--lut", type=_pubkey, help="LUT to extend with the tree")
    tree.add_argument("--max-depth", type=int, default=DEFAULT_MAX_DEPTH)
    tree.add_argument("--max-buffer", type=int, default=DEFAULT_MAX_BUFFER_SIZE)
    tree.add_argument("--canopy-depth", type=int, default=0)

    paid = subparsers.add_parser(
        "mint-nft-token-payment",
        help="Mint an NFT paid for with an SPL token. Keypair receives the payment",
    )
    _add_common(paid, require_wallet=True)
    paid.add_argument(
        "-c", "--config", required=True, help="Path for config of collection and metadata"
    )
    paid.add_argument(
        "-p", "--payer", required=True, help="Payer and receiver of the NFT wallet path"
    )
    paid.add_argument("-i", "--image-path", required=True, help="Image path or URI")
    paid.add_argument("-m", "--mint", type=_pubkey, required=True, help="Token mint address")
    paid.add_argument("--amount", type=_amount, required=True, help="Token amount to send")
    paid.add_argument(
        "--ui-amount",
        action="store_true",
        help="Amount is in UI units (e.g. 1.5) and is scaled by the mint decimals",
    )
    paid.add_argument("-n", "--name", help=NAME_HELP)
    paid.add_argument("-l", "--lut", type=_pubkey, help="LUT address")
    paid.add_argument(
        "--no-submit",
        dest="submit",
        action="store_false",
        help="Print the partially signed transaction instead of signing and sending it",
    )

    mint = subparsers.add_parser(
        "mint-nft", help="Mint an NFT. COLLECTION_AUTH signs and pays"
    )
    _add_common(mint, require_wallet=False)
    mint.add_argument("-c", "--config", required=True, help="Path for config of collection")
    mint.add_argument("-i", "--image-path", required=True, help="Image path or URI")
    mint.add_argument("-n", "--name", help=NAME_HELP)
    mint.add_argument("--mint-to", type=_pubkey, help="Leaf owner (defaults to the authority)")
    mint.add_argument("-l", "--lut", type=_pubkey, help="LUT address")

    update = subparsers.add_parser("update-nft", help="Update an NFT")
    _add_common(update, require_wallet=True)
    update.add_argument("-a", "--asset-id", type=_pubkey, required=True)
    update.add_argument("-n", "--name", help="New name of the CNFT")
    update.add_argument("-u", "--uri", help="New URI of the CNFT")
    update.add_argument("--collection", type=_pubkey, help="Collection mint of the CNFT")
    update.add_argument("-l", "--lut", type=_pubkey, help="LUT address")

    single = subparsers.add_parser("fetch-single", help="Fetch a CNFT")
    _add_common(single, require_wallet=False)
    single.add_argument("-a", "--asset-id", help="AssetId of the CNFT")
    single.add_argument("--merkle-tree", help="Merkle tree address, with --leaf-index")
    single.add_argument("--leaf-index", type=int, help="Leaf index of the CNFT")
    single.add_argument("--no-proof", dest="proof", action="store_false", help="Exclude proof")

    cnfts = subparsers.add_parser("fetch-cnfts", help="Fetch CNFTs by collection or owner")
    _add_common(cnfts, require_wallet=False)
    cnfts.add_argument("--collection", help="Collection address")
    cnfts.add_argument(
        "--owner",
        help="Owner address. With --collection, the owner's CNFTs are filtered by collection",
    )
    _add_paginate(cnfts)

    search = subparsers.add_parser("search", help="Search CNFTs by collection or owner")
    _add_common(search, require_wallet=False)
    search.add_argument("--collection", help="Collection address")
    search.add_argument("--owner", help="Owner address")
    search.add_argument(
        "--no-compressed", dest="compressed", action="store_false", help="Search non-compressed assets"
    )
    _add_paginate(search)

    signatures = subparsers.add_parser(
        "fetch-signatures", help="Fetch the transaction history of a CNFT"
    )
    _add_common(signatures, require_wallet=False)
    signatures.add_argument("-a", "--asset-id", required=True)
    _add_paginate(signatures)

    return parser


@contextlib.asynccontextmanager
async def _open_client(
    args: argparse.Namespace, settings: Settings, upload: bool = False
) -> AsyncIterator[CnftClient]:
    connection = AsyncClient(settings.resolve_rpc_url(args.env, args.rpc))
    das = DasApiClient(args.das_url or settings.resolve_das_url(args.env, args.rpc))
    uploader = NftStorageUploader(settings.require_nft_storage_api_key()) if upload else None
    try:
        yield CnftClient(connection, das=das, uploader=uploader)
    finally:
        await das.close()
        if uploader is not None:
            await uploader.close()
        await connection.close()


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str))


# ============================================================================
# Commands
# ============================================================================


async def cmd_create_lut(args: argparse.Namespace, settings: Settings) -> None:
    keypair = load_keypair(args.keypair)
    async with _open_client(args, settings) as client:
        if args.cnft:
            result = await client.create_cnft_lut(keypair)
            if args.addresses:
                await client.extend_lut(keypair, args.addresses, lut=result.lut_address)
        elif args.addresses:
            result = await client.create_lut_with_addresses(keypair, args.addresses)
        else:
            result = await client.create_lut(keypair)
    print(f"LUT created at: {result.lut_address}")
    write_to_file(result.to_dict(), f"lut-{result.lut_address}.json", args.log)


async def cmd_extend_lut(args: argparse.Namespace, settings: Settings) -> None:
    keypair = load_keypair(args.keypair)
    async with _open_client(args, settings) as client:
        result = await client.extend_lut(keypair, args.addresses, lut=args.lut, slot=args.slot)
    print(f"LUT extended at: {result.lut_address}")


async def cmd_create_merkle_tree(args: argparse.Namespace, settings: Settings) -> None:
    keypair = load_keypair(args.keypair)
    async with _open_client(args, settings) as client:
        result = await client.create_merkle_tree(
            keypair,
            max_depth=args.max_depth,
            max_buffer_size=args.max_buffer,
            lut_address=args.lut,
            canopy_depth=args.canopy_depth,
        )
    print(f"Merkle Tree created at: {result.merkle_tree_address}. Signature: {result.signature}")
    write_to_file(result.to_dict(), f"merkleTree-{result.merkle_tree_address}.json", args.log)


def _image_source(value: str) -> ImageSource:
    if value.startswith(("http://", "https://", "ipfs://", "ar://")):
        return ImageSource(path=value, is_uri=True)
    return ImageSource(path=value)


def _native_amount(amount: Decimal, decimals: int, ui_amount: bool) -> int:
    if ui_amount:
        return ui_to_native(amount, decimals)
    if amount != amount.to_integral_value():
        raise ValueError(
            f"Amount {amount} is not a whole number of native units; pass --ui-amount "
            f"to scale it by the mint's {decimals} decimals"
        )
    return int(amount)


async def cmd_create_collection(args: argparse.Namespace, settings: Settings) -> None:
    keypair = load_keypair(args.keypair)
    async with _open_client(args, settings, upload=True) as client:
        result = await client.create_collection(
            keypair,
            CreateCollectionArgs(
                name=args.name,
                symbol=args.symbol,
                description=args.description,
                seller_fee_basis_points=args.seller_fee_basis_points,
                external_url=args.external_url,
                image=_image_source(args.image_path),
            ),
            lut_address=args.lut,
        )
    print(f"Collection created at: {result.collection_mint}")
    write_to_file(result.to_dict(), f"collection-{result.collection_mint}.json", args.log)


async def cmd_mint_nft_token_payment(args: argparse.Namespace, settings: Settings) -> None:
    payee = load_keypair(args.keypair)
    payer = load_keypair(args.payer)
    authority = settings.collection_authority()
    config = MetadataConfig.from_dict(load_json(args.config))

    async with _open_client(args, settings, upload=True) as client:
        mint = await client.get_mint(args.mint)
        logger.info(f"Token mint {args.mint} has {mint.decimals} decimals")
        payment = TokenPayment(
            payer=payer.pubkey(),
            payee=payee.pubkey(),
            amount=_native_amount(args.amount, mint.decimals, args.ui_amount),
            decimals=mint.decimals,
            mint=args.mint,
        )
        nft = CreateNftArgs(
            name=args.name or config.name,
            collection_mint=config.address,
            attributes=config.attributes,
            creators=config.creators,
            mint_to=payer.pubkey(),
            image=_image_source(args.image_path),
        )
        encoded = await client.mint_nft_with_token_payment(
            authority,
            payer.pubkey(),
            payment,
            nft,
            config.to_collection(),
            config.merkle_tree_address,
            args.lut,
        )
        if not args.submit:
            print(encoded)
            write_to_file({"transaction": encoded}, f"mint-tx-{payer.pubkey()}.json", args.log)
            return

        transaction = sign_as(decode_transaction(encoded), payer)
        signature = await client.send_transaction(transaction)

    print(f"NFT minted! Signature: {signature}")
    write_to_file({"transaction": encoded, "signature": str(signature)}, f"nfts-{signature}.json", args.log)


async def cmd_mint_nft(args: argparse.Namespace, settings: Settings) -> None:
    authority = settings.collection_authority()
    config = MetadataConfig.from_dict(load_json(args.config))
    async with _open_client(args, settings, upload=True) as client:
        nft = CreateNftArgs(
            name=args.name or config.name,
            collection_mint=config.address,
            attributes=config.attributes,
            creators=config.creators,
            mint_to=args.mint_to,
            image=_image_source(args.image_path),
        )
        signature = await client.mint_nft(
            authority, nft, config.to_collection(), config.merkle_tree_address, args.lut
        )
    print(f"NFT minted! Signature: {signature}")
    write_to_file({"signature": str(signature)}, f"nfts-{signature}.json", args.log)


async def cmd_update_nft(args: argparse.Namespace, settings: Settings) -> None:
    keypair = load_keypair(args.keypair)
    async with _open_client(args, settings) as client:
        signature = await client.update_nft(
            keypair,
            UpdateNftArgs(asset_id=args.asset_id, name=args.name, uri=args.uri),
            collection_mint=args.collection,
            lut_address=args.lut,
        )
    print(f"NFT updated! Signature: {signature}")
    write_to_file({"signature": str(signature)}, f"nft-{args.asset_id}.json", args.log)


async def cmd_fetch_single(args: argparse.Namespace, settings: Settings) -> None:
    async with _open_client(args, settings) as client:
        if args.asset_id:
            result = await client.das.fetch_cnft_by_asset_id(args.asset_id, args.proof)
            name = f"cnft-{args.asset_id}.json"
        elif args.merkle_tree and args.leaf_index is not None:
            result = await client.das.fetch_cnft_by_tree_and_leaf(
                args.merkle_tree, args.leaf_index, args.proof
            )
            name = f"cnft-{args.merkle_tree}-{args.leaf_index}.json"
        else:
            raise ValueError("Provide --asset-id or both --merkle-tree and --leaf-index")
    _print(result)
    write_to_file(result, name, args.log)


async def cmd_fetch_cnfts(args: argparse.Namespace, settings: Settings) -> None:
    async with _open_client(args, settings) as client:
        if args.owner:
            assets = await client.das.fetch_cnfts_by_owner(
                args.owner, args.collection, args.paginate
            )
            name = (
                f"cnft-collection-{args.collection}-{args.owner}.json"
                if args.collection
                else f"cnfts-owner-{args.owner}.json"
            )
        elif args.collection:
            assets = await client.das.fetch_cnfts_by_collection(args.collection, args.paginate)
            name = f"cnfts-collection-{args.collection}.json"
        else:
            raise ValueError("No collection or owner provided")
    print(f"Found {len(assets)} CNFTs")
    write_to_file([a.to_dict() for a in assets], name, args.log)


async def cmd_search(args: argparse.Namespace, settings: Settings) -> None:
    async with _open_client(args, settings) as client:
        assets = await client.das.search_cnfts(
            args.owner, args.collection, args.compressed, args.paginate
        )
    print(f"Found {len(assets)} assets")
    if args.collection and args.owner:
        key = f"c-{args.collection}-o{args.owner}"
    else:
        key = args.collection or args.owner
    write_to_file([a.to_dict() for a in assets], f"cnfts-search-{key}.json", args.log)


async def cmd_fetch_signatures(args: argparse.Namespace, settings: Settings) -> None:
    async with _open_client(args, settings) as client:
        signatures = await client.das.fetch_signatures_for_asset(args.asset_id, args.paginate)
    print(f"Found {len(signatures)} signatures")
    write_to_file(
        [s.to_dict() for s in signatures], f"signatures-{args.asset_id}.json", args.log
    )


COMMANDS = {
    "create-lut": cmd_create_lut,
    "extend-lut": cmd_extend_lut,
    "create-merkle-tree": cmd_create_merkle_tree,
    "create-collection": cmd_create_collection,
    "mint-nft-token-payment": cmd_mint_nft_token_payment,
    "mint-nft": cmd_mint_nft,
    "update-nft": cmd_update_nft,
    "fetch-single": cmd_fetch_single,
    "fetch-cnfts": cmd_fetch_cnfts,
    "search": cmd_search,
    "fetch-signatures": cmd_fetch_signatures,
}


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    settings = Settings.from_env()

    try:
        asyncio.run(COMMANDS[args.command](args, settings))
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        parser.exit(130, "interrupted\n")
    except (CnftError, ApiError, RPCException, SolanaRpcException, ValueError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
