"""
Image upload validation and storage.

ImageManager gates one uploaded image at a time: it checks the submission,
sniffs the staged bytes with Pillow, works out where the file will live and
finally moves it there. Deleting a stored image needs no instance and lives on
the class as a static method.
"""

import logging
import os
import shutil
from typing import Mapping, Optional

from PIL import Image

from image_manager.errors import (
    FileTooLarge,
    IndexOutOfBounds,
    InvalidExtension,
    NoFileSet,
    NoFileUploaded,
    NotAnImage,
)
from image_manager.schemas import ImageInfo, UploadedField, UploadErrorCode, UploadRequest

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png")


def file_extension(file_name: str) -> str:
    """Lower-cased text after the last dot of the base name, or ``""``."""
    base = os.path.basename(file_name)
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[1].lower()


def is_allowed_extension(file_name: str) -> bool:
    return file_extension(file_name) in ALLOWED_EXTENSIONS


def probe_image(path: str) -> ImageInfo:
    """
    Read the image header of ``path``.

    Raises NotAnImage when Pillow cannot identify the bytes (or the file
    cannot be opened at all).
    """
    try:
        with Image.open(path) as img:
            width, height = img.size
            fmt = img.format
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise NotAnImage(details={"reason": str(e)}) from e

    if not fmt or width <= 0 or height <= 0:
        raise NotAnImage()
    return ImageInfo(width=width, height=height, format=fmt)


class ImageManager:
    """
    Upload one or more image files into a target folder, optionally renaming
    them, and delete stored images.

    An instance handles one file at a time: ``set_file`` validates a file and
    ``save_file`` moves it into place. Use one instance per in-flight upload.
    """

    def __init__(self, target_folder: str):
        self._target_folder = str(target_folder)
        self._unset_file()

    @property
    def target_folder(self) -> str:
        return self._target_folder

    def set_file(self, request: UploadRequest) -> None:
        """
        Validate the file described by ``request``.

        Only ``jpg``, ``jpeg`` and ``png`` files whose content is an image are
        accepted. On any failure the manager is left with no file set.

        Raises:
            NoFileUploaded, FileTooLarge, IndexOutOfBounds,
            InvalidExtension, NotAnImage
        """
        self._unset_file()

        field = request.files.get(request.field)
        index = request.file_index

        if field is None or field.error_code(index) == UploadErrorCode.NO_FILE:
            logger.info("Rejected upload for '%s': no file", request.field)
            raise NoFileUploaded()

        if field.error_code(index) == UploadErrorCode.INI_SIZE:
            logger.info("Rejected upload for '%s': file too large", request.field)
            raise FileTooLarge()

        if index is not None and not 0 <= index < field.count():
            logger.info(
                "Rejected upload for '%s': index %s of %s files",
                request.field, index, field.count(),
            )
            raise IndexOutOfBounds(details={"index": index, "count": field.count()})

        name = os.path.basename(field.value("name", index))
        extension = file_extension(name)
        out_name = name if not request.out_file_name else f"{request.out_file_name}.{extension}"
        target_file_name = os.path.join(self._target_folder, out_name)
        temp_file_name = field.value("tmp_name", index)

        if extension not in ALLOWED_EXTENSIONS:
            logger.info("Rejected upload '%s': extension '%s'", name, extension)
            raise InvalidExtension(details={"extension": extension})

        info = probe_image(temp_file_name)

        self._target_file_name = target_file_name
        self._target_file_extension = extension
        self._temp_file_name = temp_file_name
        self._image_info = info
        logger.info("Accepted upload '%s' as '%s' (%s)", name, out_name, info.format)

    def file_name(self) -> str:
        """File name (with extension) to upload or already uploaded."""
        self._verify_file_presence()
        return os.path.basename(self._target_file_name)

    def file_extension(self) -> str:
        self._verify_file_presence()
        return self._target_file_extension

    def target_path(self) -> str:
        self._verify_file_presence()
        return self._target_file_name

    def image_info(self) -> ImageInfo:
        self._verify_file_presence()
        return self._image_info

    def save_file(self) -> bool:
        """
        Move the staged file into the target folder.

        Returns True if the file was moved, False if the filesystem refused.
        """
        self._verify_file_presence()
        try:
            shutil.move(self._temp_file_name, self._target_file_name)
        except OSError as e:
            logger.warning(
                "Failed to move '%s' to '%s': %s",
                self._temp_file_name, self._target_file_name, e,
            )
            return False

        logger.info("Stored '%s'", self._target_file_name)
        return True

    @staticmethod
    def count_files(files: Mapping[str, UploadedField], field: str) -> int:
        """Number of files submitted under ``field``."""
        uploaded = files.get(field)
        if uploaded is None:
            return 0
        return uploaded.count()

    @staticmethod
    def delete_file(file_name: str) -> bool:
        """
        Remove a stored image given its path.

        Files without an image extension are never touched and give False.
        """
        if not is_allowed_extension(file_name):
            return False
        try:
            os.remove(file_name)
        except OSError as e:
            logger.warning("Failed to delete '%s': %s", file_name, e)
            return False

        logger.info("Deleted '%s'", file_name)
        return True

    def _verify_file_presence(self) -> None:
        if not self._target_file_extension or not self._target_file_name:
            raise NoFileSet()

    def _unset_file(self) -> None:
        self._target_file_name = ""
        self._target_file_extension = ""
        self._temp_file_name = ""
        self._image_info: Optional[ImageInfo] = None
