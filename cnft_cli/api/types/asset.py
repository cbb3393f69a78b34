"""Asset types returned by the DAS read API."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..error import DeserializeError


@dataclass
class AssetCompression:
    """Compression state of an asset: its tree, leaf index and leaf hashes."""

    compressed: bool
    tree: Optional[str] = None
    leaf_id: Optional[int] = None
    seq: Optional[int] = None
    data_hash: Optional[str] = None
    creator_hash: Optional[str] = None
    asset_hash: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AssetCompression":
        return cls(
            compressed=bool(data.get("compressed", False)),
            tree=data.get("tree") or None,
            leaf_id=data.get("leaf_id"),
            seq=data.get("seq"),
            data_hash=data.get("data_hash") or None,
            creator_hash=data.get("creator_hash") or None,
            asset_hash=data.get("asset_hash") or None,
        )


@dataclass
class AssetOwnership:
    owner: str
    delegate: Optional[str] = None
    delegated: bool = False
    frozen: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "AssetOwnership":
        try:
            return cls(
                owner=data["owner"],
                delegate=data.get("delegate"),
                delegated=bool(data.get("delegated", False)),
                frozen=bool(data.get("frozen", False)),
            )
        except KeyError as e:
            raise DeserializeError(f"Missing required field in AssetOwnership: {e}")


@dataclass
class Asset:
    """A digital asset as indexed by DAS.

    `raw` keeps the full record; it is what gets persisted and what leaf
    metadata is rebuilt from.
    """

    id: str
    interface: str
    compression: AssetCompression
    ownership: AssetOwnership
    name: Optional[str] = None
    json_uri: Optional[str] = None
    collection: Optional[str] = None
    burnt: bool = False
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> "Asset":
        try:
            content = data.get("content") or {}
            collection = next(
                (
                    g.get("group_value")
                    for g in data.get("grouping") or []
                    if g.get("group_key") == "collection"
                ),
                None,
            )
            return cls(
                id=data["id"],
                interface=data.get("interface", ""),
                compression=AssetCompression.from_dict(data.get("compression") or {}),
                ownership=AssetOwnership.from_dict(data["ownership"]),
                name=(content.get("metadata") or {}).get("name"),
                json_uri=content.get("json_uri"),
                collection=collection,
                burnt=bool(data.get("burnt", False)),
                raw=data,
            )
        except KeyError as e:
            raise DeserializeError(f"Missing required field in Asset: {e}")

    def to_dict(self) -> dict:
        return self.raw

    def in_collection(self, collection: str) -> bool:
        return self.collection == collection


@dataclass
class AssetProof:
    """Merkle proof of a compressed asset's leaf."""

    root: str
    proof: List[str]
    node_index: int
    leaf: str
    tree_id: str

    @classmethod
    def from_dict(cls, data: dict) -> "AssetProof":
        try:
            return cls(
                root=data["root"],
                proof=list(data["proof"]),
                node_index=data["node_index"],
                leaf=data["leaf"],
                tree_id=data["tree_id"],
            )
        except KeyError as e:
            raise DeserializeError(f"Missing required field in AssetProof: {e}")

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "proof": self.proof,
            "node_index": self.node_index,
            "leaf": self.leaf,
            "tree_id": self.tree_id,
        }


@dataclass
class AssetWithProof:
    asset: Asset
    proof: AssetProof

    def to_dict(self) -> dict:
        return {"asset": self.asset.to_dict(), "proof": self.proof.to_dict()}


@dataclass
class AssetPage:
    """One page of a DAS asset listing."""

    items: List[Asset]
    total: int = 0
    limit: int = 0
    page: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AssetPage":
        items = [Asset.from_dict(item) for item in data.get("items") or []]
        return cls(
            items=items,
            total=data.get("total", len(items)),
            limit=data.get("limit", 0),
            page=data.get("page"),
        )


@dataclass
class AssetSignature:
    """A transaction that touched an asset."""

    signature: str
    instruction: str

    @classmethod
    def from_item(cls, item: Any) -> "AssetSignature":
        # DAS returns [signature, instruction] pairs
        if isinstance(item, (list, tuple)) and len(item) == 2:
            return cls(signature=item[0], instruction=item[1])
        if isinstance(item, dict) and "signature" in item:
            return cls(signature=item["signature"], instruction=item.get("type", ""))
        raise DeserializeError(f"Unrecognized signature entry: {item!r}")

    def to_dict(self) -> dict:
        return {"signature": self.signature, "instruction": self.instruction}


@dataclass
class SignaturePage:
    items: List[AssetSignature]
    total: int = 0
    limit: int = 0
    page: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SignaturePage":
        items = [AssetSignature.from_item(item) for item in data.get("items") or []]
        return cls(
            items=items,
            total=data.get("total", len(items)),
            limit=data.get("limit", 0),
            page=data.get("page"),
        )
