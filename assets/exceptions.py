"""
Asset Ledger Exceptions
=======================
Raised by assets.services; admin actions and management commands turn them
into user-facing messages.
"""


class AssetError(Exception):
    """Base class for asset ledger errors."""


class UnsupportedDepreciationMethod(AssetError):
    """The asset's depreciation method has no calculation implemented."""

    def __init__(self, asset, method):
        self.asset = asset
        self.method = method
        super().__init__(
            f"Depreciation method '{method}' is not supported (asset {asset.asset_id})."
        )


class DepreciationRunError(AssetError):
    """A depreciation run failed; nothing from the run was saved."""
