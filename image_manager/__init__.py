from image_manager.errors import (
    ErrorKind,
    FileTooLarge,
    ImageManagerError,
    IndexOutOfBounds,
    InvalidExtension,
    NoFileSet,
    NoFileUploaded,
    NotAnImage,
)
from image_manager.schemas import ImageInfo, UploadedField, UploadErrorCode, UploadRequest
from image_manager.storage import ALLOWED_EXTENSIONS, ImageManager

__all__ = [
    "ALLOWED_EXTENSIONS",
    "ErrorKind",
    "FileTooLarge",
    "ImageInfo",
    "ImageManager",
    "ImageManagerError",
    "IndexOutOfBounds",
    "InvalidExtension",
    "NoFileSet",
    "NoFileUploaded",
    "NotAnImage",
    "UploadErrorCode",
    "UploadRequest",
    "UploadedField",
]
