"""Custom exceptions for the document vault."""


class LexVaultError(Exception):
    """Base exception for the project."""

    status_code = 500

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.message = message
        self.path = path


class NotFoundError(LexVaultError):
    """Raised when a client, folder or file is absent."""

    status_code = 404


class InvalidInputError(LexVaultError):
    """Raised for a missing field, an unsafe path segment or an undecodable image."""

    status_code = 400


class StorageIOError(LexVaultError):
    """Raised when a filesystem read, write or permission check fails."""

    status_code = 500


class ConflictError(LexVaultError):
    """Reserved for overwrite protection; the namer avoids conflicts by renaming."""

    status_code = 409
