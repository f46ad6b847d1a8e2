from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from typing import Dict, Any, List, Optional, Iterable
import logging

from erp_api.common.numbering import next_document_number
from erp_api.common.pagination import paginate
from erp_api.modules.auth.models import User
from erp_api.modules.customers.models import Customer
from erp_api.modules.projects.models import Project, ProjectTask, ProjectStatus, TaskStatus
from erp_api.modules.projects.schemas import ProjectCreate, ProjectUpdate, TaskCreate, TaskUpdate
from erp_api.modules.delivery_invoicing.models import DeliveryNote, Invoice
from erp_api.modules.accounting.models import JournalLine

logger = logging.getLogger(__name__)


class ProjectService:
    """Projects and their tasks"""

    def __init__(self, db: Session):
        self.db = db

    # ===== VALIDATION HELPERS =====

    def _ensure_customer(self, customer_id: Optional[UUID]) -> None:
        if customer_id and not self.db.query(Customer.id).filter(Customer.id == customer_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Customer not found"
            )

    def _ensure_users(self, user_ids: Iterable[UUID]) -> None:
        user_ids = {uid for uid in user_ids if uid}
        if not user_ids:
            return
        found = {uid for (uid,) in self.db.query(User.id).filter(User.id.in_(user_ids)).all()}
        missing = user_ids - found
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User not found: {', '.join(str(m) for m in missing)}"
            )

    def _code_taken(self, code: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(Project).filter(Project.code == code)
        if exclude_id:
            query = query.filter(Project.id != exclude_id)
        return query.first() is not None

    # ===== PROJECTS =====

    def create_project(self, project_data: ProjectCreate) -> Project:
        """
        Create a project; the code is generated as PRJ-NNN when omitted

        Raises:
            HTTPException: 404 for unknown customer/users, 409 on duplicate code
        """
        try:
            self._ensure_customer(project_data.customer_id)
            self._ensure_users([project_data.manager_id, *project_data.team])

            if project_data.code and self._code_taken(project_data.code):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"A project with code '{project_data.code}' already exists"
                )

            data = project_data.model_dump(exclude={"code", "team"})
            project = Project(
                **data,
                code=project_data.code or next_document_number(
                    self.db, "PRJ", yearly=False, is_taken=self._code_taken
                ),
                team=[str(member) for member in project_data.team]
            )
            if project.status == ProjectStatus.COMPLETED:
                project.progress = 100

            self.db.add(project)
            self.db.commit()
            self.db.refresh(project)

            logger.info(f"Project created: {project.code} {project.name}")
            return project

        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating project: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_projects(
        self,
        limit: int = 20,
        offset: int = 0,
        project_status: Optional[ProjectStatus] = None,
        customer_id: Optional[UUID] = None,
        manager_id: Optional[UUID] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        query = self.db.query(Project)

        if project_status:
            query = query.filter(Project.status == project_status)
        if customer_id:
            query = query.filter(Project.customer_id == customer_id)
        if manager_id:
            query = query.filter(Project.manager_id == manager_id)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Project.name.ilike(term), Project.code.ilike(term)))

        page = paginate(query.order_by(Project.start_date.desc(), Project.code), limit, offset)
        return {
            "projects": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_project(self, project_id: UUID) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Project not found"
            )
        return project

    def update_project(self, project_id: UUID, update_data: ProjectUpdate) -> Project:
        try:
            project = self.get_project(project_id)
            update_dict = update_data.model_dump(exclude_unset=True)

            for field in ("name", "code", "start_date", "status", "budget", "actual_cost", "progress", "team"):
                if field in update_dict and update_dict[field] is None:
                    update_dict.pop(field)

            if "customer_id" in update_dict:
                self._ensure_customer(update_dict["customer_id"])
            self._ensure_users([update_dict.get("manager_id"), *update_dict.get("team", [])])

            if update_dict.get("code") and self._code_taken(update_dict["code"], exclude_id=project_id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"A project with code '{update_dict['code']}' already exists"
                )

            start = update_dict.get("start_date", project.start_date)
            end = update_dict.get("end_date", project.end_date)
            if start and end and end < start:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="End date must be on or after the start date"
                )

            if "team" in update_dict:
                update_dict["team"] = [str(member) for member in update_dict["team"]]

            for field, value in update_dict.items():
                setattr(project, field, value)

            if project.status == ProjectStatus.COMPLETED:
                project.progress = 100

            self.db.commit()
            self.db.refresh(project)

            logger.info(f"Project updated: {project.code} ({project.status.value}, {project.progress}%)")
            return project

        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating project {project_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating project: {str(e)}"
            )

    def delete_project(self, project_id: UUID) -> Dict[str, str]:
        try:
            project = self.get_project(project_id)

            in_use = (
                self.db.query(DeliveryNote.id).filter(DeliveryNote.project_id == project_id).first()
                or self.db.query(Invoice.id).filter(Invoice.project_id == project_id).first()
                or self.db.query(JournalLine.id).filter(JournalLine.project_id == project_id).first()
            )
            if in_use:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="This project is referenced by delivery notes, invoices or journal entries"
                )

            self.db.delete(project)
            self.db.commit()

            logger.info(f"Project deleted: {project.code}")
            return {"message": "The project has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting project: {str(e)}"
            )

    # ===== TASKS =====

    def _validate_dependencies(
        self,
        project: Project,
        dependencies: List[UUID],
        task_id: Optional[UUID] = None
    ) -> List[str]:
        """
        Dependencies must be other tasks of the same project and may not
        close a cycle back to the task being saved.
        """
        graph = {task.id: [UUID(str(dep)) for dep in (task.dependencies or [])] for task in project.tasks}
        unique = list(dict.fromkeys(dependencies))

        for dep in unique:
            if task_id is not None and dep == task_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="A task cannot depend on itself"
                )
            if dep not in graph:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Dependency {dep} is not a task of this project"
                )

        if task_id is not None:
            graph[task_id] = unique
            visited = set()
            pending = list(unique)
            while pending:
                current = pending.pop()
                if current == task_id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="Task dependencies cannot form a cycle"
                    )
                if current in visited:
                    continue
                visited.add(current)
                pending.extend(graph.get(current, []))

        return [str(dep) for dep in unique]

    def list_tasks(self, project_id: UUID, task_status: Optional[TaskStatus] = None) -> List[ProjectTask]:
        self.get_project(project_id)
        query = self.db.query(ProjectTask).filter(ProjectTask.project_id == project_id)
        if task_status:
            query = query.filter(ProjectTask.status == task_status)
        return query.order_by(ProjectTask.created_at).all()

    def get_task(self, project_id: UUID, task_id: UUID) -> ProjectTask:
        task = self.db.query(ProjectTask).filter(
            ProjectTask.id == task_id,
            ProjectTask.project_id == project_id
        ).first()
        if not task:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Task not found"
            )
        return task

    def create_task(self, project_id: UUID, task_data: TaskCreate) -> ProjectTask:
        try:
            project = self.get_project(project_id)
            self._ensure_users([task_data.assignee_id])

            # A new task has no dependents yet, so only membership is checked
            dependencies = self._validate_dependencies(project, task_data.dependencies)

            task = ProjectTask(
                **task_data.model_dump(exclude={"dependencies"}),
                project_id=project.id,
                dependencies=dependencies
            )
            self.db.add(task)
            self.db.commit()
            self.db.refresh(task)

            logger.info(f"Task created in {project.code}: {task.title}")
            return task

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating task for project {project_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def update_task(self, project_id: UUID, task_id: UUID, update_data: TaskUpdate) -> ProjectTask:
        try:
            project = self.get_project(project_id)
            task = self.get_task(project_id, task_id)
            update_dict = update_data.model_dump(exclude_unset=True)

            for field in ("title", "status", "priority", "dependencies"):
                if field in update_dict and update_dict[field] is None:
                    update_dict.pop(field)

            if "assignee_id" in update_dict:
                self._ensure_users([update_dict["assignee_id"]])
            if "dependencies" in update_dict:
                update_dict["dependencies"] = self._validate_dependencies(
                    project, update_dict["dependencies"], task_id=task.id
                )

            start = update_dict.get("start_date", task.start_date)
            end = update_dict.get("end_date", task.end_date)
            if start and end and end < start:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="End date must be on or after the start date"
                )
            due = update_dict.get("due_date", task.due_date)
            if start and due and due < start:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Due date must be on or after the start date"
                )

            for field, value in update_dict.items():
                setattr(task, field, value)

            self.db.commit()
            self.db.refresh(task)

            logger.info(f"Task updated in {project.code}: {task.title} ({task.status.value})")
            return task

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating task {task_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating task: {str(e)}"
            )

    def delete_task(self, project_id: UUID, task_id: UUID) -> Dict[str, str]:
        """Delete a task and drop it from the dependency lists of its siblings."""
        try:
            project = self.get_project(project_id)
            task = self.get_task(project_id, task_id)

            removed = str(task.id)
            for sibling in project.tasks:
                if sibling.id != task.id and removed in (sibling.dependencies or []):
                    sibling.dependencies = [dep for dep in sibling.dependencies if dep != removed]

            self.db.delete(task)
            self.db.commit()

            logger.info(f"Task deleted from {project.code}: {task_id}")
            return {"message": "The task has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting task: {str(e)}"
            )

    # ===== VIEWS =====

    def get_kanban(self, project_id: UUID) -> Dict[str, Any]:
        tasks = self.list_tasks(project_id)
        columns = {task_status.value: [] for task_status in TaskStatus}
        for task in tasks:
            columns[task.status.value].append(task)
        return {"project_id": project_id, "columns": columns}

    def get_timeline(self, project_id: UUID) -> Dict[str, Any]:
        """
        Gantt data: tasks ordered by start date with their offset from the
        project start and their duration in days (both ends inclusive).
        """
        project = self.get_project(project_id)
        tasks = sorted(
            project.tasks,
            key=lambda t: (t.start_date is None, t.start_date or project.start_date, t.created_at)
        )

        rows = []
        for task in tasks:
            start = task.start_date
            end = task.end_date or task.due_date
            rows.append({
                "id": task.id,
                "title": task.title,
                "status": task.status,
                "priority": task.priority,
                "assignee_id": task.assignee_id,
                "start_date": start,
                "end_date": end,
                "offset_days": (start - project.start_date).days if start else None,
                "duration_days": (end - start).days + 1 if start and end else None,
                "dependencies": task.dependencies or []
            })

        return {
            "project_id": project.id,
            "start_date": project.start_date,
            "end_date": project.end_date,
            "tasks": rows
        }
