"""
Error types shared by the burned area pipeline components.

ConfigurationError is fatal and raised before processing starts.
EmptyBaselineError and ClusterResolutionError are per-date conditions that
the mapping pipeline degrades or records instead of aborting the run.
UpstreamIOError wraps raster read/write failures and is surfaced to the caller.
EmptyStackError carries the missing-date record of a run where every date failed.

Author: Diego Bengochea
"""


class BurnedAreaError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(BurnedAreaError, ValueError):
    """Invalid or missing configuration value."""


class EmptyBaselineError(BurnedAreaError):
    """No pre-fire acquisitions match a geometry group."""

    def __init__(self, message: str, group=None):
        super().__init__(message)
        self.group = group


class ClusterResolutionError(BurnedAreaError):
    """The burned cluster could not be identified for one acquisition."""

    def __init__(self, message: str, identifier: str = None):
        super().__init__(message)
        self.identifier = identifier


class UpstreamIOError(BurnedAreaError):
    """Raster read or export failure reported by the backend."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class EmptyStackError(BurnedAreaError, ValueError):
    """No acquisition date produced a burned area mask."""

    def __init__(self, message: str, missing=None):
        super().__init__(message)
        self.missing = dict(missing or {})
