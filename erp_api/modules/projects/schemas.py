from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal

from erp_api.common.validators import normalize_code
from erp_api.modules.projects.models import ProjectStatus, TaskStatus, TaskPriority
from erp_api.modules.customers.schemas import CustomerSummary


def _check_dates(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end < start:
        raise ValueError('End date must be on or after the start date')


def _check_task_dates(start: Optional[date], end: Optional[date], due: Optional[date]) -> None:
    _check_dates(start, end)
    if start and due and due < start:
        raise ValueError('Due date must be on or after the start date')


# ===== PROJECTS =====

class ProjectBase(BaseModel):
    name: str = Field(..., max_length=200)
    code: Optional[str] = Field(None, max_length=20, description="Generated as PRJ-NNN when omitted")
    description: Optional[str] = None
    customer_id: Optional[UUID] = None
    start_date: date
    end_date: Optional[date] = None
    status: ProjectStatus = ProjectStatus.PLANNED
    budget: Decimal = Field(Decimal("0"), ge=0)
    actual_cost: Decimal = Field(Decimal("0"), ge=0)
    progress: int = Field(0, ge=0, le=100)
    manager_id: Optional[UUID] = None
    team: List[UUID] = []

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if len(v.strip()) < 2:
            raise ValueError('Project name must be at least 2 characters')
        return v.strip()

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        return normalize_code(v) or None

    @model_validator(mode='after')
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    customer_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ProjectStatus] = None
    budget: Optional[Decimal] = Field(None, ge=0)
    actual_cost: Optional[Decimal] = Field(None, ge=0)
    progress: Optional[int] = Field(None, ge=0, le=100)
    manager_id: Optional[UUID] = None
    team: Optional[List[UUID]] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Project name must be at least 2 characters')
        return v.strip() if v else v

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if v is None:
            return v
        v = normalize_code(v)
        if not v:
            raise ValueError('Project code cannot be blank')
        return v

    @model_validator(mode='after')
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class ProjectOut(BaseModel):
    id: UUID
    name: str
    code: str
    description: Optional[str] = None
    customer_id: Optional[UUID] = None
    customer: Optional[CustomerSummary] = None
    start_date: date
    end_date: Optional[date] = None
    status: ProjectStatus
    budget: Decimal
    actual_cost: Decimal
    budget_variance: Decimal
    progress: int
    manager_id: Optional[UUID] = None
    team: List[UUID] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectList(BaseModel):
    projects: List[ProjectOut]
    total: int
    limit: int
    offset: int


# ===== TASKS =====

class TaskCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    due_date: Optional[date] = None
    dependencies: List[UUID] = []

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if len(v.strip()) < 2:
            raise ValueError('Task title must be at least 2 characters')
        return v.strip()

    @model_validator(mode='after')
    def validate_dates(self):
        _check_task_dates(self.start_date, self.end_date, self.due_date)
        return self


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    due_date: Optional[date] = None
    dependencies: Optional[List[UUID]] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Task title must be at least 2 characters')
        return v.strip() if v else v

    @model_validator(mode='after')
    def validate_dates(self):
        _check_task_dates(self.start_date, self.end_date, self.due_date)
        return self


class TaskOut(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    assignee_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    due_date: Optional[date] = None
    dependencies: List[UUID] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class KanbanBoard(BaseModel):
    project_id: UUID
    columns: Dict[str, List[TaskOut]]


class TimelineTask(BaseModel):
    id: UUID
    title: str
    status: TaskStatus
    priority: TaskPriority
    assignee_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    offset_days: Optional[int] = None
    duration_days: Optional[int] = None
    dependencies: List[UUID] = []


class ProjectTimeline(BaseModel):
    project_id: UUID
    start_date: date
    end_date: Optional[date] = None
    tasks: List[TimelineTask]
