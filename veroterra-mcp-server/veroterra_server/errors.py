"""Error types raised by the catalog and order operations."""


class VeroterraError(Exception):
    """Base class for all recoverable catalog/order errors."""


class EmptyCatalogError(VeroterraError):
    """Parsed input contained no row with a usable product name."""

    def __init__(self, message: str = "No valid rows found. CSV header must be: Name,Price,PV") -> None:
        super().__init__(message)


class CatalogFormatError(VeroterraError):
    """Catalog input could not be decoded at all (e.g. invalid JSON)."""


class InvalidLineItem(VeroterraError):
    """Line item rejected: missing name or non-positive quantity."""


class IndexOutOfRange(VeroterraError):
    """Order line position does not exist."""

    def __init__(self, index: int, size: int) -> None:
        self.index = index
        self.size = size
        super().__init__(f"No order line at position {index} (order has {size} line(s))")


class SourceUnavailable(VeroterraError):
    """Remote fetch or local file read failed."""


class CatalogLoadInProgress(VeroterraError):
    """Another catalog acquisition has not finished yet."""


class NothingToExport(VeroterraError):
    """Export requested for an empty catalog or an empty order."""
