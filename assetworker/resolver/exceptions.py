class AssetNotFoundError(Exception):
    """Raised when an asset or the requested object range does not exist."""
