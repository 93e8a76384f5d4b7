"""
Scanner exceptions.
"""


class ScannerError(Exception):
    """Base class of every scanner error"""


class AggregationError(ScannerError):
    """No exchange returned usable funding rates"""

    def __init__(self, message: str = "No funding rates available from any exchange"):
        super().__init__(message)
        self.message = message
