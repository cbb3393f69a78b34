"""Runtime settings read from the environment.

Only the CLI calls `Settings.from_env`; library code takes its credentials
as arguments.
"""

import json
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from solders.keypair import Keypair

from .program.errors import ConfigurationError

CLUSTER_URLS = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}

DEFAULT_CLUSTER = "devnet"


def resolve_rpc_url(env: str = DEFAULT_CLUSTER, rpc_url: Optional[str] = None) -> str:
    """An explicit RPC URL wins; otherwise the public endpoint of `env`."""
    if rpc_url:
        return rpc_url
    try:
        return CLUSTER_URLS[env]
    except KeyError:
        raise ValueError(
            f"Unknown cluster {env!r}; expected one of {', '.join(CLUSTER_URLS)}"
        )


@dataclass
class Settings:
    """Credentials and endpoints.

    Environment variables:
        COLLECTION_AUTH: collection authority secret key as a JSON byte array
        NFT_STORAGE_API_KEY: nft.storage API token
        CNFT_RPC_URL: RPC endpoint, overrides the cluster default
        CNFT_DAS_URL: DAS endpoint, defaults to the RPC endpoint
    """

    collection_auth: Optional[str] = None
    nft_storage_api_key: Optional[str] = None
    rpc_url: Optional[str] = None
    das_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        return cls(
            collection_auth=environ.get("COLLECTION_AUTH") or None,
            nft_storage_api_key=environ.get("NFT_STORAGE_API_KEY") or None,
            rpc_url=environ.get("CNFT_RPC_URL") or None,
            das_url=environ.get("CNFT_DAS_URL") or None,
        )

    def collection_authority(self) -> Keypair:
        """Decode COLLECTION_AUTH.

        Raises:
            ConfigurationError: If it is unset or not a JSON byte array
        """
        if not self.collection_auth:
            raise ConfigurationError("COLLECTION_AUTH")
        try:
            return Keypair.from_bytes(bytes(json.loads(self.collection_auth)))
        except (ValueError, TypeError) as e:
            raise ConfigurationError("COLLECTION_AUTH as a valid secret key") from e

    def require_nft_storage_api_key(self) -> str:
        if not self.nft_storage_api_key:
            raise ConfigurationError("NFT_STORAGE_API_KEY")
        return self.nft_storage_api_key

    def resolve_rpc_url(self, env: str = DEFAULT_CLUSTER, rpc_url: Optional[str] = None) -> str:
        return resolve_rpc_url(env, rpc_url or self.rpc_url)

    def resolve_das_url(self, env: str = DEFAULT_CLUSTER, rpc_url: Optional[str] = None) -> str:
        return self.das_url or self.resolve_rpc_url(env, rpc_url)
