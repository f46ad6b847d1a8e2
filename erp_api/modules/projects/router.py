from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID

from erp_api.database.database import get_db
from erp_api.common.pagination import PageParams, page_params, MessageResponse
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from erp_api.modules.projects.models import ProjectStatus, TaskStatus
from erp_api.modules.projects.service import ProjectService
from erp_api.modules.projects.schemas import (
    ProjectCreate, ProjectUpdate, ProjectOut, ProjectList,
    TaskCreate, TaskUpdate, TaskOut, KanbanBoard, ProjectTimeline
)

require_projects = AuthDependencies.require_permission(Permission.PROJECT)

projects_router = APIRouter(prefix="/projects", tags=["Projects"])


# ===== PROJECTS =====

@projects_router.post("/", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
    project: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).create_project(project)


@projects_router.get("/", response_model=ProjectList)
def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = Query(None),
    manager_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, description="Search by name or code"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).list_projects(
        page.limit, page.offset, status_filter, customer_id, manager_id, search
    )


@projects_router.get("/{project_id}", response_model=ProjectOut)
def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).get_project(project_id)


@projects_router.patch("/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: UUID,
    update: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).update_project(project_id, update)


@projects_router.delete("/{project_id}", response_model=MessageResponse)
def delete_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).delete_project(project_id)


# ===== TASKS =====

@projects_router.get("/{project_id}/tasks", response_model=List[TaskOut])
def list_tasks(
    project_id: UUID,
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).list_tasks(project_id, status_filter)


@projects_router.post("/{project_id}/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: UUID,
    task: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).create_task(project_id, task)


@projects_router.get("/{project_id}/tasks/{task_id}", response_model=TaskOut)
def get_task(
    project_id: UUID,
    task_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).get_task(project_id, task_id)


@projects_router.patch("/{project_id}/tasks/{task_id}", response_model=TaskOut)
def update_task(
    project_id: UUID,
    task_id: UUID,
    update: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).update_task(project_id, task_id, update)


@projects_router.delete("/{project_id}/tasks/{task_id}", response_model=MessageResponse)
def delete_task(
    project_id: UUID,
    task_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    return ProjectService(db).delete_task(project_id, task_id)


# ===== VIEWS =====

@projects_router.get("/{project_id}/kanban", response_model=KanbanBoard)
def get_kanban(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    """Tasks grouped by status column."""
    return ProjectService(db).get_kanban(project_id)


@projects_router.get("/{project_id}/timeline", response_model=ProjectTimeline)
def get_timeline(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_projects)
):
    """Gantt chart data."""
    return ProjectService(db).get_timeline(project_id)
