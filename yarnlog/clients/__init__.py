"""Clients for external services."""

from .assets import AssetStore, CloudinaryAssetStore

__all__ = [
    "AssetStore",
    "CloudinaryAssetStore",
]
