"""Wallet loading and result persistence for the CLI."""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

logger = logging.getLogger(__name__)

OUTPUT_DIR = "out"


def keypair_from_secret(secret: Union[str, bytes, List[int]]) -> Keypair:
    """Build a keypair from a base58 string, raw bytes or a JSON byte array."""
    if isinstance(secret, str):
        return Keypair.from_bytes(base58.b58decode(secret))
    return Keypair.from_bytes(bytes(secret))


def load_keypair(path: str) -> Keypair:
    """Load a Solana CLI wallet file (JSON array of 64 bytes).

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid secret key
    """
    if not path:
        raise ValueError("Keypair is required")
    wallet = Path(path).expanduser()
    if not wallet.exists():
        raise FileNotFoundError(f"Keypair file not found at: {path}")

    keypair = keypair_from_secret(json.loads(wallet.read_text()))
    logger.info(f"Loaded keypair public key: {keypair.pubkey()}")
    return keypair


def load_json(path: str) -> Any:
    return json.loads(Path(path).expanduser().read_text())


def _default(value: Any) -> Any:
    if isinstance(value, (Pubkey, Signature)):
        return str(value)
    if isinstance(value, bytes):
        return base58.b58encode(value).decode("ascii")
    if hasattr(value, "to_dict"):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def write_to_file(
    data: Any,
    name: str,
    enabled: bool = True,
    output_dir: str = OUTPUT_DIR,
) -> Optional[Path]:
    """Write `data` as pretty JSON to `output_dir/name`; no-op when disabled."""
    if not enabled:
        return None
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / name
    target.write_text(json.dumps(data, indent=2, default=_default))
    logger.info(f"Data saved to {target}")
    return target
