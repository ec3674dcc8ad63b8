"""
Exception hierarchy for the account comparison tool.

Fatal errors abort the run, node errors skip a single node store and
normalization errors skip a single record.
"""


class AccountDbCompareError(Exception):
    """Base class for all errors raised by the comparison tool."""


class ConfigurationError(AccountDbCompareError):
    """Raised when the configuration file or CLI options are invalid."""


class ArchiverUnavailableError(AccountDbCompareError):
    """Raised when the archiver database cannot be opened or read."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Archiver database unreadable: {self.path} ({reason})")


class NodesFolderNotFoundError(AccountDbCompareError):
    """Raised when the nodes folder does not exist."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Nodes folder not found: {self.path}")


class NodeStoreError(AccountDbCompareError):
    """Raised when a single node database cannot be opened or read."""

    def __init__(self, node_name: str, path, reason: str):
        self.node_name = node_name
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Node store {node_name} unreadable: {self.path} ({reason})")


class NormalizeError(AccountDbCompareError, ValueError):
    """Raised when an account payload cannot be normalized."""

    error_type = "normalize_error"

    def __init__(self, reason: str, account_id: str = ""):
        self.reason = reason
        self.account_id = account_id
        super().__init__(reason)


class UnrecognizedShapeError(NormalizeError):
    """Payload matches neither the regular nor the special account schema."""

    error_type = "unrecognized_shape"


class MalformedNumberError(NormalizeError):
    """A numeric field is present but cannot be decoded."""

    error_type = "malformed_number"
