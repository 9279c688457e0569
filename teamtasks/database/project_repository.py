"""Repository for Project database operations.

Projects are managed elsewhere; the engine only reads them. `create` exists for
seeding and tests.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from teamtasks.database.models import ProjectDB
from teamtasks.models.project import Project

logger = logging.getLogger(__name__)


class ProjectRepository:
    """Repository for Project database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, project_id: str) -> Optional[Project]:
        """Get project by ID."""
        project_db = self.db.query(ProjectDB).filter(ProjectDB.id == project_id).first()
        return project_db.to_pydantic() if project_db else None

    def create(self, project: Project) -> Project:
        """Create a new project."""
        try:
            project_db = ProjectDB.from_pydantic(project)
            self.db.add(project_db)
            self.db.commit()
            self.db.refresh(project_db)
            logger.debug(f"Created project {project.id}: {project.title[:50]}")
            return project_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create project {project.id}: {type(e).__name__}: {str(e)}")
            raise
