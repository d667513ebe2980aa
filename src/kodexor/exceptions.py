from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class KodexorError(Exception):
    """Base exception for errors in the kodexor package."""


@dataclass(frozen=True)
class MalformedConfigError(KodexorError):
    """Raised when a configuration file cannot be parsed into a fragment."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Malformed configuration in {self.path}: {self.reason}"


@dataclass(frozen=True)
class OutputWriteError(KodexorError):
    """Raised when the export document cannot be written to its destination."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Cannot write export to {self.path}: {self.reason}"
