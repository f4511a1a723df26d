"""Error handling with friendly messages."""

from __future__ import annotations


class ArchmodError(Exception):
    """Base exception for all archmod errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(ArchmodError):
    """Configuration error."""

    pass


class FileError(ArchmodError):
    """File operation error."""

    pass


class ArchiveReadError(FileError):
    """Original archive is missing, corrupt, or cannot be streamed."""

    pass


class ArchiveWriteError(FileError):
    """Destination archive cannot be created, written, or published."""

    pass


class SourceUnreadableError(FileError):
    """A staged content source vanished or became unreadable."""

    def __init__(self, location: str, reason: str | None = None) -> None:
        self.location = location
        message = f"Staged content '{location}' cannot be read"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, "Re-stage the entry with a readable source and save again")


class DuplicateEntryError(ArchmodError):
    """Entry already exists and overwrite was not requested."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Archive already contains entry: {name}",
            "Pass overwrite=True or choose a different entry name",
        )


class InvalidEntryNameError(ArchmodError):
    """Entry name is empty, absolute, or escapes the archive root."""

    pass
