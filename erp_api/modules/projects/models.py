from sqlalchemy import Column, Integer, String, Date, ForeignKey, Numeric, Enum, Text, JSON, Uuid
from sqlalchemy.orm import relationship
from decimal import Decimal
import enum

from erp_api.database.database import Base
from erp_api.common.mixins import BaseMixin


class ProjectStatus(str, enum.Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_PROJECT_STATUSES = (ProjectStatus.PLANNED, ProjectStatus.IN_PROGRESS, ProjectStatus.ON_HOLD)


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Project(Base, BaseMixin):
    __tablename__ = "projects"

    name = Column(String(200), nullable=False, index=True)
    code = Column(String(20), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=True, index=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(Enum(ProjectStatus), nullable=False, default=ProjectStatus.PLANNED, index=True)

    budget = Column(Numeric(15, 2), nullable=False, default=0)
    actual_cost = Column(Numeric(15, 2), nullable=False, default=0)
    progress = Column(Integer, nullable=False, default=0)  # 0-100

    manager_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    team = Column(JSON, nullable=False, default=list)  # user ids

    # Relationships
    customer = relationship("Customer")
    manager = relationship("User")
    tasks = relationship(
        "ProjectTask",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectTask.created_at"
    )

    @property
    def budget_variance(self) -> Decimal:
        """Positive when the project is under budget."""
        return Decimal(self.budget or 0) - Decimal(self.actual_cost or 0)


class ProjectTask(Base, BaseMixin):
    __tablename__ = "project_tasks"

    project_id = Column(
        Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(TaskStatus), nullable=False, default=TaskStatus.TODO)
    priority = Column(Enum(TaskPriority), nullable=False, default=TaskPriority.MEDIUM)
    assignee_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)

    dependencies = Column(JSON, nullable=False, default=list)  # task ids within the same project

    # Relationships
    project = relationship("Project", back_populates="tasks")
    assignee = relationship("User")
