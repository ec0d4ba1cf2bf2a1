from .asset_content import AssetContentCopier

__all__ = ["AssetContentCopier"]
