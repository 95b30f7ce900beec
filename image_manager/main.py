import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import FileResponse, JSONResponse

from image_manager.errors import ErrorKind, ImageManagerError
from image_manager.schemas import (
    DeleteResult,
    FileInfo,
    UploadedField,
    UploadErrorCode,
    UploadRequest,
)
from image_manager.storage import ImageManager, file_extension, is_allowed_extension

# ---------- Config ----------
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "/data/uploads"))
STAGING_DIR = Path(os.getenv("UPLOAD_STAGING_DIR", tempfile.gettempdir()))
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(2 * 1024 * 1024)))
OUT_NAME_PATTERN = r"^[a-zA-Z0-9._-]*$"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.NO_FILE_UPLOADED: 400,
    ErrorKind.FILE_TOO_LARGE: 413,
    ErrorKind.INDEX_OUT_OF_BOUNDS: 400,
    ErrorKind.INVALID_EXTENSION: 415,
    ErrorKind.NOT_AN_IMAGE: 415,
    ErrorKind.NO_FILE_SET: 409,
}

# ---------- App ----------
app = FastAPI(title="Image Manager API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ImageManagerError)
async def image_manager_error_handler(request: Request, exc: ImageManagerError):
    return JSONResponse(status_code=ERROR_STATUS.get(exc.kind, 400), content=exc.to_dict())


# ---------- Staging ----------
def stage_upload(upload: Optional[UploadFile]) -> tuple[str, str, int, int]:
    """
    Copy an upload into the staging area.

    Returns (original name, staging path, upload error code, size).
    """
    if upload is None or not upload.filename:
        return "", "", int(UploadErrorCode.NO_FILE), 0

    STAGING_DIR.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix="upload-", dir=STAGING_DIR)
    with os.fdopen(fd, "wb") as buffer:
        shutil.copyfileobj(upload.file, buffer)

    size = os.path.getsize(tmp_name)
    if size > MAX_UPLOAD_SIZE:
        os.remove(tmp_name)
        return upload.filename, "", int(UploadErrorCode.INI_SIZE), size

    return upload.filename, tmp_name, int(UploadErrorCode.OK), size


def discard_staged(field: UploadedField) -> None:
    """Remove staged files that were not moved into the upload folder."""
    tmp_names = field.tmp_name if isinstance(field.tmp_name, list) else [field.tmp_name]
    for tmp_name in tmp_names:
        if tmp_name and os.path.exists(tmp_name):
            os.remove(tmp_name)


def file_info(manager: ImageManager, original_name: str, size: int) -> FileInfo:
    info = manager.image_info()
    return FileInfo(
        original_name=original_name,
        stored_name=manager.file_name(),
        extension=manager.file_extension(),
        size=size,
        width=info.width,
        height=info.height,
        format=info.format,
    )


def commit(manager: ImageManager) -> None:
    if not manager.save_file():
        raise HTTPException(status_code=500, detail="Failed to store file")


# ---------- Routes ----------
@app.post("/images", response_model=FileInfo)
async def upload_image(
    file: Optional[UploadFile] = File(None),
    name: str = Form("", pattern=OUT_NAME_PATTERN),
):
    """
    Upload a single jpg/jpeg/png image, optionally stored under a new name.
    """
    original_name, tmp_name, error, size = stage_upload(file)
    field = UploadedField(name=original_name, tmp_name=tmp_name, error=error, size=size)

    try:
        UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        manager = ImageManager(str(UPLOAD_DIR))
        manager.set_file(UploadRequest(files={"file": field}, field="file", out_file_name=name))
        commit(manager)
    finally:
        discard_staged(field)

    return file_info(manager, original_name, size)


@app.post("/images/batch", response_model=list[FileInfo])
async def upload_images(
    files: Optional[list[UploadFile]] = File(None),
    name: str = Form("", pattern=OUT_NAME_PATTERN),
):
    """
    Upload several images at once. With a name, files are stored as
    ``<name>_<index>.<ext>``. Stops at the first rejected file.
    """
    staged = [stage_upload(upload) for upload in files or []]
    field = UploadedField(
        name=[s[0] for s in staged],
        tmp_name=[s[1] for s in staged],
        error=[s[2] for s in staged],
        size=[s[3] for s in staged],
    )
    uploads = {"files": field}

    stored = []
    try:
        UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        manager = ImageManager(str(UPLOAD_DIR))
        if ImageManager.count_files(uploads, "files") == 0:
            # an empty multiple input still reports "no file"
            manager.set_file(UploadRequest(files=uploads, field="files"))

        for index in range(ImageManager.count_files(uploads, "files")):
            out_name = f"{name}_{index}" if name else ""
            manager.set_file(
                UploadRequest(files=uploads, field="files", out_file_name=out_name, file_index=index)
            )
            commit(manager)
            stored.append(file_info(manager, field.value("name", index), field.value("size", index)))
    finally:
        discard_staged(field)

    return stored


@app.get("/images", response_model=list[FileInfo])
def list_images():
    """
    List all stored images.
    """
    images = []
    for path in sorted(UPLOAD_DIR.glob("*")):
        if path.is_file() and is_allowed_extension(path.name):
            images.append(
                FileInfo(
                    original_name=path.name,
                    stored_name=path.name,
                    extension=file_extension(path.name),
                    size=path.stat().st_size,
                )
            )
    return images


@app.get("/images/{file_name}")
def get_image(file_name: str):
    path = UPLOAD_DIR / Path(file_name).name
    if not path.is_file() or not is_allowed_extension(path.name):
        raise HTTPException(status_code=404, detail="Image not found")

    media_type = "image/png" if file_extension(path.name) == "png" else "image/jpeg"
    return FileResponse(path, filename=path.name, media_type=media_type)


@app.delete("/images/{file_name}", response_model=DeleteResult)
def delete_image(file_name: str):
    """
    Delete a stored image.
    """
    path = UPLOAD_DIR / Path(file_name).name
    if not is_allowed_extension(path.name):
        raise HTTPException(status_code=415, detail="Only jpg, jpeg and png files can be deleted")

    if not ImageManager.delete_file(str(path)):
        raise HTTPException(status_code=404, detail="Image not found")

    return DeleteResult(file_name=path.name, deleted=True)


@app.get("/", include_in_schema=False)
async def custom_swagger_ui():
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Image Manager API Docs")


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
