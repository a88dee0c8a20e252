from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..file_service import delete_file, get_downloadable_file
from ..middleware import get_current_user
from ..models import User
from ..schemas import MessageResponse

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.get("/{file_id}")
def download(file_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    file = get_downloadable_file(db, file_id, current_user)
    return FileResponse(file.file_path, media_type=file.file_type, filename=file.filename)


@router.delete("/{file_id}", response_model=MessageResponse)
def remove(file_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    delete_file(db, file_id, current_user)
    return MessageResponse(message="File deleted successfully")
