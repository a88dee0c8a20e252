import logging
import os

from sqlalchemy.orm import Session

from .database import transaction
from .errors import NotFoundError
from .models import SubmissionFile, User
from .permissions import Action, Resource, authorize
from .storage import remove_files

logger = logging.getLogger(__name__)


def get_file_or_404(db: Session, file_id: int) -> SubmissionFile:
    file = db.get(SubmissionFile, file_id)
    if not file:
        raise NotFoundError("File not found")
    return file


def get_downloadable_file(db: Session, file_id: int, actor: User) -> SubmissionFile:
    file = get_file_or_404(db, file_id)
    authorize(actor, Resource.FILE, Action.READ, file, "You do not have permission to access this file")
    if not os.path.exists(file.file_path):
        logger.warning(f"File {file.id} is missing on disk at {file.file_path}")
        raise NotFoundError("File not found on server")
    return file


def delete_file(db: Session, file_id: int, actor: User) -> None:
    file = get_file_or_404(db, file_id)
    authorize(actor, Resource.FILE, Action.DELETE, file, "You do not have permission to delete this file")
    file_path = file.file_path
    with transaction(db):
        db.delete(file)
    remove_files([file_path])
    logger.info(f"File {file_id} deleted by user {actor.id}")
