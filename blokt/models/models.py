import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text, DateTime, ForeignKey, JSON,
    Enum as SAEnum
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from blokt.models.base import Base
import enum

__all__ = [
    "UserRole", "ProjectStatus", "TaskStatus", "AlertSeverity",
    "Organization", "User", "Project", "Task", "SafetyAlert", "Video",
    "gen_uuid",
]


class UserRole(str, enum.Enum):
    PROJECT_MANAGER = "project_manager"
    FOREMAN = "foreman"
    FIELD_WORKER = "field_worker"
    SAFETY_MANAGER = "safety_manager"
    EXECUTIVE = "executive"


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELAYED = "delayed"


class AlertSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def gen_uuid():
    return str(uuid.uuid4())


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name = Column(String(255), nullable=False)
    type = Column(String(100), nullable=True)
    procore_company_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = relationship("User", back_populates="organization")


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(SAEnum(UserRole, name="user_role_enum"), nullable=False, default=UserRole.FIELD_WORKER)
    organization_id = Column(UUID(as_uuid=False), ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True)
    # denormalized, kept in step with Project.user_ids
    project_ids = Column(JSON, nullable=False, default=list)
    trade = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization", back_populates="users")

    @property
    def first_name(self) -> str:
        return (self.name or "").split(" ")[0] or "there"


class Project(Base):
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    organization_id = Column(UUID(as_uuid=False), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    location = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(SAEnum(ProjectStatus, name="project_status_enum"), nullable=False, default=ProjectStatus.ACTIVE)
    date = Column(DateTime, nullable=True)
    ended_date = Column(DateTime, nullable=True)
    procore_project_id = Column(String(100), nullable=True, index=True)
    task_ids = Column(JSON, nullable=False, default=list)
    user_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SAEnum(TaskStatus, name="task_status_enum"), nullable=False, default=TaskStatus.PENDING)
    start = Column(DateTime, nullable=True)
    end = Column(DateTime, nullable=True)
    trade = Column(String(100), nullable=True)
    assignees = Column(JSON, nullable=False, default=list)
    safety_id = Column(UUID(as_uuid=False), nullable=True)
    procore_task_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SafetyAlert(Base):
    __tablename__ = "safety"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    project_id = Column(UUID(as_uuid=False), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(UUID(as_uuid=False), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    video_id = Column(UUID(as_uuid=False), ForeignKey("videos.id", ondelete="SET NULL"), nullable=True)
    violation_type = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(SAEnum(AlertSeverity, name="alert_severity_enum"), nullable=False, default=AlertSeverity.MEDIUM)
    confidence_score = Column(Float, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    acknowledged = Column(Boolean, default=False)
    acknowledged_by = Column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    acknowledged_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project")
    task = relationship("Task")
    worker = relationship("User", foreign_keys=[user_id])
    video = relationship("Video")


class Video(Base):
    __tablename__ = "videos"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    uri = Column(String(1000), nullable=False)
    file_name = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    user_id = Column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(UUID(as_uuid=False), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    start = Column(DateTime, nullable=True)
    endtime = Column(DateTime, nullable=True)
    task_ids = Column(JSON, nullable=False, default=list)
    ai_suggested_tasks = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User")
    project = relationship("Project")
