"""Project lookup and private-detail access rules shared by the API and services."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.common.enums import UserRole
from renolink.common.exceptions import ProjectNotFoundError
from renolink.db.models.project import Project
from renolink.db.models.unlock import ProjectUnlock, unlock_key
from renolink.db.models.user import User


async def get_project(db: AsyncSession, project_id: uuid.UUID) -> Project:
    result = await db.execute(
        select(Project).where(Project.id == project_id, Project.is_deleted.is_(False))
    )
    project = result.scalar_one_or_none()
    if not project:
        raise ProjectNotFoundError(str(project_id))
    return project


async def find_unlock(
    db: AsyncSession, contractor_id: uuid.UUID, project_id: uuid.UUID
) -> ProjectUnlock | None:
    result = await db.execute(
        select(ProjectUnlock).where(
            ProjectUnlock.unlock_key == unlock_key(contractor_id, project_id)
        )
    )
    return result.scalar_one_or_none()


async def can_view_private_details(db: AsyncSession, project: Project, user: User) -> bool:
    """Owner homeowner, admins, and contractors holding an unlock may see private details."""
    if user.role == UserRole.ADMIN.value:
        return True
    if user.role == UserRole.HOMEOWNER.value:
        return project.homeowner_id == user.id
    if user.role == UserRole.CONTRACTOR.value:
        return await find_unlock(db, user.id, project.id) is not None
    return False
