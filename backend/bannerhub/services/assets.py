from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class StoredAsset:
    url: str
    storage_ref: Optional[str] = None


class AssetStore(Protocol):
    """Image/asset storage collaborator: takes a URL or inline data URI, returns where it lives."""

    def store(self, source: str, storage_ref: Optional[str] = None) -> StoredAsset:
        ...


class PassthroughAssetStore:
    """Keeps remote URLs and data URIs as submitted; uploads happen outside this service."""

    def store(self, source: str, storage_ref: Optional[str] = None) -> StoredAsset:
        return StoredAsset(url=source, storage_ref=storage_ref)


def get_asset_store() -> AssetStore:
    return PassthroughAssetStore()
