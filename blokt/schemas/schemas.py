from pydantic import BaseModel, field_validator
from datetime import datetime, timezone
from typing import Optional


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored datetimes are naive UTC; convert aware input to match."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    email: str
    password: str
    name: str
    role: str = "field_worker"
    invite_code: Optional[str] = None


class NavItem(BaseModel):
    href: str
    label: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str
    organization_id: Optional[str] = None
    trade: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime


class UserWithNav(UserResponse):
    organization_name: Optional[str] = None
    navigation: list[NavItem] = []


class OrgCreate(BaseModel):
    name: str
    type: Optional[str] = None


class OrgResponse(BaseModel):
    id: str
    name: str
    type: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    trade: Optional[str] = None


class ProfileResponse(UserResponse):
    organization: Optional[OrgResponse] = None


class PasswordUpdate(BaseModel):
    new_password: str
    confirm_password: str


class ProjectRef(BaseModel):
    id: str
    name: str


class TeamMemberResponse(UserResponse):
    project_count: int = 0
    projects: list[ProjectRef] = []


class InviteCodeResponse(BaseModel):
    code: str


class ProjectCreate(BaseModel):
    name: str
    location: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    ended_date: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    date: Optional[datetime] = None
    ended_date: Optional[datetime] = None


class ProjectResponse(BaseModel):
    id: str
    organization_id: str
    name: str
    location: Optional[str]
    description: Optional[str]
    status: str
    date: Optional[datetime]
    ended_date: Optional[datetime]
    procore_project_id: Optional[str] = None
    task_ids: list[str] = []
    user_ids: list[str] = []
    task_count: int = 0
    completed_count: int = 0
    created_at: datetime
    updated_at: datetime


class MemberResponse(BaseModel):
    user_id: str
    name: str
    email: str
    role: str
    trade: Optional[str] = None


class MemberCreate(BaseModel):
    user_id: str
    role: Optional[str] = None


class MemberRoleUpdate(BaseModel):
    role: str


class TaskCreate(BaseModel):
    name: str
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    trade: Optional[str] = None
    assignees: list[str] = []

    @field_validator("start", "end")
    def normalize_dates(cls, value):
        return _naive_utc(value)


class TaskUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    trade: Optional[str] = None
    assignees: Optional[list[str]] = None

    @field_validator("start", "end")
    def normalize_dates(cls, value):
        return _naive_utc(value)


class TaskResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    status: str
    start: Optional[datetime]
    end: Optional[datetime]
    trade: Optional[str]
    assignees: list[str] = []
    procore_task_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TaskConfirm(BaseModel):
    video_id: str
    task_ids: list[str]


class SafetyAlertCreate(BaseModel):
    project_id: Optional[str] = None
    violation_type: Optional[str] = None
    severity: Optional[str] = None
    description: Optional[str] = None
    task_id: Optional[str] = None
    user_id: Optional[str] = None
    video_id: Optional[str] = None
    confidence_score: Optional[float] = None


class SafetyAlertResponse(BaseModel):
    id: str
    project_id: str
    project_name: Optional[str] = None
    task_id: Optional[str]
    task_name: Optional[str] = None
    user_id: Optional[str]
    worker_name: Optional[str] = None
    video_id: Optional[str]
    violation_type: str
    description: Optional[str]
    severity: str
    confidence_score: Optional[float]
    timestamp: datetime
    acknowledged: bool
    acknowledged_by: Optional[str]
    acknowledged_at: Optional[datetime]
    created_at: datetime


class VideoCreate(BaseModel):
    uri: str
    start: Optional[datetime] = None
    endtime: Optional[datetime] = None
    task_ids: list[str] = []
    project_id: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None

    @field_validator("start", "endtime")
    def normalize_times(cls, value):
        return _naive_utc(value)


class VideoResponse(BaseModel):
    id: str
    uri: str
    file_name: Optional[str]
    file_size: Optional[int]
    user_id: str
    project_id: Optional[str]
    project_name: Optional[str] = None
    start: Optional[datetime]
    endtime: Optional[datetime]
    task_ids: list[str] = []
    ai_suggested_tasks: list[str] = []
    created_at: datetime


class VideoDetail(VideoResponse):
    playback_url: Optional[str] = None
    suggested_tasks: list[TaskResponse] = []
    tagged_tasks: list[TaskResponse] = []


class AnalysisResult(BaseModel):
    success: bool
    completed_task_ids: list[str] = []
    used_fallback: bool = False


class ProjectDetail(ProjectResponse):
    members: list[MemberResponse] = []
    tasks: list[TaskResponse] = []
    videos: list[VideoResponse] = []
    safety_alerts: list[SafetyAlertResponse] = []


class ProcoreSummary(BaseModel):
    projects: int
    users: int
    tasks: int
    manpower_logs: int = 0
    errors: int = 0


class ProcoreConnectResponse(BaseModel):
    success: bool
    summary: ProcoreSummary


class ProcoreStatus(BaseModel):
    connected: bool
    last_sync: Optional[datetime] = None


class DashboardResponse(BaseModel):
    first_name: str
    role: str
    projects: list[ProjectResponse]
    active_projects: list[ProjectResponse]
    all_tasks: list[TaskResponse]
    completed_tasks: list[TaskResponse]
    pending_tasks: list[TaskResponse]
    total_members: int
    widgets: dict


class AlignmentDataPoint(BaseModel):
    date: str
    planned: int
    completed: int
    score: int


class ProjectMetrics(BaseModel):
    name: str
    alignment: int
    efficiency: int
    safety: int


class TradePerformance(BaseModel):
    trade: str
    tasks_completed: int
    avg_duration: float
    on_time_rate: int


class SafetyViolation(BaseModel):
    type: str
    count: int
    severity: str


class AnalyticsResponse(BaseModel):
    avg_alignment: int
    efficiency_score: int
    safety_compliance: int
    active_workers: int
    project_count: int
    alignment_data: list[AlignmentDataPoint]
    project_metrics: list[ProjectMetrics]
    trade_performance: list[TradePerformance]
    safety_violations: list[SafetyViolation]
