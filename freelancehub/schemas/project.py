"""Project schemas."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from freelancehub.models.project import ProjectStatus

from .notification import NotificationRead


class ProjectCreate(BaseModel):
    title: str
    description: str
    budget: Decimal
    required_skills: list[str] = Field(default_factory=list)
    deadline: datetime | None = None


class ProjectUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    budget: Decimal | None = None
    required_skills: list[str] | None = None
    deadline: datetime | None = None


class ProjectRead(BaseModel):
    id: int
    title: str
    description: str
    budget: Decimal
    required_skills: list[str]
    deadline: datetime | None
    status: ProjectStatus
    client_id: int
    freelancer_id: int | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectActionRead(BaseModel):
    project: ProjectRead
    notifications: list[NotificationRead] = Field(default_factory=list)


class ClosedProjectCount(BaseModel):
    client_id: int
    freelancer_id: int
    closed_projects: int
