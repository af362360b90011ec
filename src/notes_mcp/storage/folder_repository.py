"""Repository for folder storage and retrieval."""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from notes_mcp.exceptions import ErrorCode
from notes_mcp.models.db_models import DBFolder
from notes_mcp.models.schema import Folder, utc_timestamp
from notes_mcp.storage.base import Repository, constraint_violation

logger = logging.getLogger(__name__)


class FolderRepository(Repository):
    """Repository for folder storage and retrieval.

    Folders are plain named labels. Notes point at them by name only, so
    nothing here checks or cascades into the notes table.
    """

    def create_folder(self, name: str) -> Folder:
        """Create a new folder.

        Args:
            name: Unique folder name.

        Returns:
            Created folder with its generated ID and creation stamp.

        Raises:
            ConstraintViolationError: If a folder with that name exists.
        """
        db_folder = DBFolder(name=name, created_at=utc_timestamp())
        with self.write_lock, self.session_factory() as session:
            try:
                session.add(db_folder)
                session.flush()
                folder = self._db_to_model(db_folder)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise constraint_violation(
                    e,
                    f"Folder '{name}' already exists",
                    field="name",
                    value=name,
                    unique_code=ErrorCode.FOLDER_ALREADY_EXISTS,
                ) from e

        logger.info(f"Created folder {folder.id}: '{folder.name}'")
        return folder

    def get_all(self) -> List[Folder]:
        """Get all folders ordered by name."""
        with self.session_factory() as session:
            result = session.execute(select(DBFolder).order_by(DBFolder.name))
            return [self._db_to_model(db) for db in result.scalars().all()]

    @staticmethod
    def _db_to_model(db_folder: DBFolder) -> Folder:
        """Convert database model to Folder."""
        return Folder(
            id=db_folder.id,
            name=db_folder.name,
            created_at=db_folder.created_at,
        )
