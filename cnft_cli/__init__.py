"""cnft-cli - mint, update and query Bubblegum compressed NFTs on Solana.

This package provides three main modules:
- `program`: Instruction building, delegated-payment transaction assembly and handoff
- `api`: DAS read client with retrying auto-pagination, and the metadata uploader
- `cli`: The `cnft-cli` command line

Example:
    from cnft_cli import CnftClient, DasApiClient

    # Or import from specific modules
    from cnft_cli.program import TransactionAssembler
    from cnft_cli.api import fetch_all
"""

__version__ = "0.1.0"

# ============================================================================
# MODULE IMPORTS
# ============================================================================

# Import submodules for namespace access
from . import api
from . import program

from .client import CnftClient
from .config import Settings, resolve_rpc_url

# ============================================================================
# CONVENIENCE RE-EXPORTS FROM PROGRAM MODULE
# ============================================================================

from .program import (
    InstructionComposer,
    TransactionAssembler,
    # Handoff
    SignatureSlot,
    decode_transaction,
    is_fully_signed,
    sign_as,
    signature_status,
    # PDA Functions
    get_asset_id,
    get_lookup_table_address,
    get_tree_config_pda,
    # Amounts
    native_to_ui,
    ui_to_native,
)
from .program.constants import (
    BUBBLEGUM_PROGRAM_ID,
    SPL_ACCOUNT_COMPRESSION_PROGRAM_ID,
    SPL_NOOP_PROGRAM_ID,
    TOKEN_METADATA_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    PACKET_DATA_SIZE,
)
from .program.types import (
    # Types - Metadata
    Attribute,
    Creator,
    MetadataArgs,
    # Types - Config
    MetadataConfig,
    NftCollection,
    # Types - Params
    CreateCollectionArgs,
    CreateNftArgs,
    ImageSource,
    MintSpec,
    TokenPayment,
    UpdateNftArgs,
    # Types - Results
    CollectionResult,
    ComposeResult,
    LookupTableResult,
    MerkleTreeResult,
)
from .program.errors import (
    CnftError,
    ConfigurationError,
    ResourceNotFoundError,
    AccountNotFoundError,
    LookupTableNotFoundError,
    MissingTokenAccountError,
    AssemblyStageError,
    InvalidSignerError,
    InvalidAmountError,
    MetadataMismatchError,
)

# ============================================================================
# CONVENIENCE RE-EXPORTS FROM API MODULE
# ============================================================================

from .api import (
    DasApiClient,
    NftStorageUploader,
    BackoffPolicy,
    fetch_all,
    retry_with_backoff,
    ApiError,
    NotFoundError,
    RateLimitedError,
    RetryExhaustedError,
)

__all__ = [
    "__version__",
    # Modules
    "api",
    "program",
    # Clients
    "CnftClient",
    "DasApiClient",
    "NftStorageUploader",
    "InstructionComposer",
    "TransactionAssembler",
    # Config
    "Settings",
    "resolve_rpc_url",
    # Handoff
    "SignatureSlot",
    "decode_transaction",
    "is_fully_signed",
    "sign_as",
    "signature_status",
    # PDA Functions
    "get_asset_id",
    "get_lookup_table_address",
    "get_tree_config_pda",
    # Amounts
    "native_to_ui",
    "ui_to_native",
    # Constants
    "BUBBLEGUM_PROGRAM_ID",
    "SPL_ACCOUNT_COMPRESSION_PROGRAM_ID",
    "SPL_NOOP_PROGRAM_ID",
    "TOKEN_METADATA_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "PACKET_DATA_SIZE",
    # Types
    "Attribute",
    "Creator",
    "MetadataArgs",
    "MetadataConfig",
    "NftCollection",
    "CreateCollectionArgs",
    "CreateNftArgs",
    "ImageSource",
    "MintSpec",
    "TokenPayment",
    "UpdateNftArgs",
    "CollectionResult",
    "ComposeResult",
    "LookupTableResult",
    "MerkleTreeResult",
    # Retry and pagination
    "BackoffPolicy",
    "fetch_all",
    "retry_with_backoff",
    # Errors
    "CnftError",
    "ConfigurationError",
    "ResourceNotFoundError",
    "AccountNotFoundError",
    "LookupTableNotFoundError",
    "MissingTokenAccountError",
    "AssemblyStageError",
    "InvalidSignerError",
    "InvalidAmountError",
    "MetadataMismatchError",
    "ApiError",
    "NotFoundError",
    "RateLimitedError",
    "RetryExhaustedError",
]
