from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from maskpaint.storage.base import StoragePort, create_default_storage
from maskpaint.storage.local import LocalBlobStorage


router = APIRouter(prefix="/blobs", tags=["blobs"])


@router.get("/{name}", response_class=FileResponse)
def get_blob(name: str, storage: StoragePort = Depends(create_default_storage)) -> FileResponse:
    if not isinstance(storage, LocalBlobStorage):
        raise HTTPException(status_code=404, detail="Blob serving is only available for local storage")
    try:
        path = storage.path_for(name)
    except (ValueError, FileNotFoundError) as exc:
        raise HTTPException(status_code=404, detail="Blob not found") from exc
    return FileResponse(path)
