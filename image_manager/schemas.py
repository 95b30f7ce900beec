from enum import IntEnum
from typing import Optional, Union

from pydantic import BaseModel, Field


class UploadErrorCode(IntEnum):
    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8


class UploadedField(BaseModel):
    """
    One form field of an already-parsed multipart submission.

    Attributes are scalars for a single file input and lists (one entry per
    file) for a ``multiple`` input.
    """

    name: Union[str, list[str]]
    tmp_name: Union[str, list[str]] = ""
    error: Union[int, list[int]] = UploadErrorCode.OK
    size: Union[int, list[int], None] = None

    @property
    def multiple(self) -> bool:
        return isinstance(self.name, list)

    def count(self) -> int:
        return len(self.name) if self.multiple else 1

    def value(self, attr: str, index: Optional[int] = None):
        value = getattr(self, attr)
        if isinstance(value, list):
            return value[0 if index is None else index]
        return value

    def error_code(self, index: Optional[int] = None) -> int:
        if not isinstance(self.error, list):
            return self.error
        if not self.error:
            return UploadErrorCode.NO_FILE
        if index is not None and 0 <= index < len(self.error):
            return self.error[index]
        return self.error[0]


class UploadRequest(BaseModel):
    files: dict[str, UploadedField] = Field(default_factory=dict)
    field: str
    out_file_name: str = Field(
        "",
        pattern=r"^[a-zA-Z0-9._-]*$",
        description="Stored file name without extension",
    )
    file_index: Optional[int] = None


class ImageInfo(BaseModel):
    width: int
    height: int
    format: str


class FileInfo(BaseModel):
    original_name: str
    stored_name: str
    extension: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class DeleteResult(BaseModel):
    file_name: str
    deleted: bool
