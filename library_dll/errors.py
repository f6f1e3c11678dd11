"""Exception types raised by library_dll.

Contract:
- ConfigurationError is fatal and aborts plugin setup
- BuildError is surfaced to the caller; the next check retries the build
- CacheReadError never leaves the snapshot store (treated as "no cache")
- WatchCycleError is reported through the host's per-cycle failure channel
"""


class LibraryDllError(Exception):
    """Base class for all library_dll errors."""

    pass


class ConfigurationError(LibraryDllError):
    """Raised when the project descriptor or plugin options are unusable."""

    pass


class BuildError(LibraryDllError):
    """Raised when the external bundler fails to produce the library bundle.

    Attributes:
        diagnostics: Diagnostic messages reported by the bundler
    """

    def __init__(self, message: str, diagnostics: list[str] | None = None) -> None:
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])

    def __str__(self) -> str:
        message = super().__str__()
        if not self.diagnostics:
            return message
        return message + "\n" + "\n".join(self.diagnostics)


class CacheReadError(LibraryDllError):
    """Raised when the snapshot file exists but cannot be parsed."""

    pass


class SnapshotWriteError(LibraryDllError):
    """Raised when the snapshot file cannot be written."""

    pass


class WatchCycleError(LibraryDllError):
    """Raised from a watch cycle whose triggered rebuild failed."""

    pass
