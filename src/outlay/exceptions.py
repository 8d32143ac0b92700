"""Exception classes for Outlay."""


class OutlayError(Exception):
    """Base exception for Outlay."""
    pass


class StorageError(OutlayError):
    """The data file could not be read or written."""
    pass


class ExportError(OutlayError):
    """An export could not be produced or delivered."""
    pass
