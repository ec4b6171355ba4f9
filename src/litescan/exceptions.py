"""
LiteScan Exceptions - Root of the error hierarchy
"""


class LiteScanError(Exception):
    """Base class for every error raised by the engine"""
    pass
