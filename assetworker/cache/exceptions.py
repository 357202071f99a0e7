from assetworker.resolver.exceptions import AssetNotFoundError


class AssetFetchError(Exception):
    """Raised when the asset read endpoint cannot be reached or returns an error."""


class RemoteAssetNotFoundError(AssetFetchError, AssetNotFoundError):
    """Raised when the asset read endpoint answers 404."""
