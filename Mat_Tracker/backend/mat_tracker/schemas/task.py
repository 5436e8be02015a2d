"""Sheme nalog / Task schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from mat_tracker.models.task import TaskStatus


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    company_id: str | None = None
    due_date: date | None = None


class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    company_id: str | None = None
    due_date: date | None = None


class TaskMove(BaseModel):
    status: TaskStatus
    position: int = Field(ge=0)


class TaskPosition(BaseModel):
    id: str
    status: TaskStatus
    position: int = Field(ge=0)


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    salesperson_id: str
    title: str
    description: str | None
    status: TaskStatus
    position: int
    company_id: str | None
    due_date: date | None
    archived_at: datetime | None
