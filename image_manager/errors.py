"""
Errors raised while validating an upload or reading a validated one.

Every failure travels through ImageManagerError; the subclass (and its kind)
tells the caller which check rejected the file.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NO_FILE_UPLOADED = "no_file_uploaded"
    FILE_TOO_LARGE = "file_too_large"
    INDEX_OUT_OF_BOUNDS = "index_out_of_bounds"
    INVALID_EXTENSION = "invalid_extension"
    NOT_AN_IMAGE = "not_an_image"
    NO_FILE_SET = "no_file_set"
    UPLOAD_FAILED = "upload_failed"


class ImageManagerError(Exception):
    """Base class for every ImageManager failure."""

    kind = ErrorKind.UPLOAD_FAILED
    default_message = "Upload failed."

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert the error to a dictionary for JSON responses."""
        return {
            "error": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class NoFileUploaded(ImageManagerError):
    kind = ErrorKind.NO_FILE_UPLOADED
    default_message = "No file was uploaded."


class FileTooLarge(ImageManagerError):
    kind = ErrorKind.FILE_TOO_LARGE
    default_message = "The uploaded file/s dimensions are higher than the server's maximum."


class IndexOutOfBounds(ImageManagerError):
    kind = ErrorKind.INDEX_OUT_OF_BOUNDS
    default_message = "Requested a file out of bounds (it is not available)."


class InvalidExtension(ImageManagerError):
    kind = ErrorKind.INVALID_EXTENSION
    default_message = "The uploaded file has an incorrect file extension."


class NotAnImage(ImageManagerError):
    kind = ErrorKind.NOT_AN_IMAGE
    default_message = "The uploaded file is not an image."


class NoFileSet(ImageManagerError):
    kind = ErrorKind.NO_FILE_SET
    default_message = "No file has been set."
