"""Custom exceptions for the cnft-cli program module."""


class CnftError(Exception):
    """Base exception for all cnft-cli program errors."""

    pass


class ConfigurationError(CnftError):
    """Raised when a required credential or configuration value is absent."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} is not set")


class ResourceNotFoundError(CnftError):
    """Raised when an on-chain resource cannot be resolved."""

    pass


class AccountNotFoundError(ResourceNotFoundError):
    """Raised when an account is not found on-chain."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Account not found: {address}")


class LookupTableNotFoundError(ResourceNotFoundError):
    """Raised when an address lookup table is missing or not yet confirmed."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Address lookup table not found: {address}")


class MissingTokenAccountError(ResourceNotFoundError):
    """Raised when an owner has no token account for the payment mint."""

    def __init__(self, owner: str, mint: str):
        self.owner = owner
        self.mint = mint
        super().__init__(f"No token account for owner {owner} and mint {mint}")


class InvalidDiscriminatorError(CnftError):
    """Raised when account data has an invalid discriminator."""

    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid discriminator: expected {expected!r}, got {actual!r}"
        )


class InvalidAccountDataError(CnftError):
    """Raised when account data cannot be deserialized."""

    def __init__(self, message: str):
        super().__init__(f"Invalid account data: {message}")


class InvalidAmountError(CnftError):
    """Raised when a token amount cannot be represented in native units."""

    def __init__(self, message: str):
        super().__init__(f"Invalid amount: {message}")


class AssemblyStageError(CnftError):
    """Raised when a transaction assembly step is invoked out of order."""

    def __init__(self, operation: str, stage: str):
        self.operation = operation
        self.stage = stage
        super().__init__(f"Cannot {operation} while assembler is in stage {stage}")


class InvalidSignerError(CnftError):
    """Raised when a key is not one of a transaction's required signers."""

    def __init__(self, pubkey: str):
        self.pubkey = pubkey
        super().__init__(f"{pubkey} is not a required signer of this transaction")


class MetadataMismatchError(CnftError):
    """Raised when reconstructed leaf metadata does not hash to the indexed leaf."""

    def __init__(self, asset_id: str, field: str):
        self.asset_id = asset_id
        self.field = field
        super().__init__(
            f"Reconstructed metadata for asset {asset_id} does not match indexed {field}"
        )
