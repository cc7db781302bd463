"""Exceptions raised by the context core.

Only snapshot acquisition can fail outright. Malformed fields and unknown
consumer needs are absorbed (logged, then defaulted or skipped) where they
are found, so they have no exception type here.
"""


class AcquisitionError(RuntimeError):
    """Raised when the host session cannot be reached or returns garbage."""
