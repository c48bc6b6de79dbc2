"""Exception hierarchy."""


class EarshotError(Exception):
    """Base exception for all earshot errors."""


class InstrumentationError(EarshotError):
    """Registration primitives could not be replaced or restored."""


class UnsupportedExportFormatError(EarshotError, ValueError):
    """Requested export format is not one of ExportFormat."""

    def __init__(self, fmt: object):
        self.format = fmt
        super().__init__(f"Unsupported export format: {fmt!r} (expected 'json' or 'csv')")
