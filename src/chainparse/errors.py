"""Chainparse exception hierarchy.

All chainparse-specific exceptions inherit from ChainparseError so callers can
tell batch-aborting failures from per-project ones with plain except clauses.
"""


class ChainparseError(Exception):
    """Base exception for all chainparse errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ConfigError(ChainparseError):
    """Invalid or missing configuration."""


class ArchiveError(ChainparseError):
    """The registry snapshot could not be downloaded or extracted."""


class RegistryError(ChainparseError):
    """A registry descriptor could not be walked, read or decoded."""


class ManifestError(ChainparseError):
    """A go.mod manifest could not be parsed."""


class BranchResolutionError(ChainparseError):
    """The default branch of a repository could not be determined."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class ChainResolutionError(ChainparseError):
    """A single chain could not be resolved and is dropped from the batch."""
