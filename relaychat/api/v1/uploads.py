from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from relaychat.api.deps import get_storage
from relaychat.schemas.upload import UploadOut
from relaychat.services.storage_service import StorageService, UploadFailure

router = APIRouter()


@router.post("/upload", response_model=UploadOut)
async def upload_file(
    file: UploadFile = File(...),
    storage: StorageService = Depends(get_storage),
) -> UploadOut:
    """
    Store one file under a generated name and return it.
    Does not notify the room; the uploader announces it with a file_upload event.
    """
    try:
        stored = await storage.save_upload(file)
    except UploadFailure as e:
        raise HTTPException(status_code=500, detail=str(e))

    return UploadOut(file_name=stored.file_name, url=stored.url)
