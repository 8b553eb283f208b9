"""
File upload endpoint for Courier.

Stores one multipart "file" field and returns the name it was stored under.
"""

from fastapi import APIRouter, Depends, File, Request, UploadFile

from ..dependencies import get_upload_store
from ..exceptions import LoggedHTTPException
from ..persistence.protocols import UploadStoreProtocol
from ..utils.error_logging import create_context_from_request

upload_router = APIRouter(prefix="/api", tags=["uploads"])


@upload_router.post("/upload")
async def upload_file(
    request: Request,
    file: UploadFile | None = File(default=None),
    upload_store: UploadStoreProtocol = Depends(get_upload_store),
) -> dict[str, str]:
    """Persist an uploaded file and return {"filename": ...}."""
    if file is None:
        raise LoggedHTTPException(status_code=400, detail="No file", context=create_context_from_request(request))
    try:
        filename = await upload_store.save(file, file.filename)
    finally:
        await file.close()
    return {"filename": filename}
