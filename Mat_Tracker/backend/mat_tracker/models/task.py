"""Model naloge (Kanban) / Task (Kanban) model."""

import enum
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mat_tracker.database import Base, generate_uuid


class TaskStatus(str, enum.Enum):
    """Stolpec na tabli / Board column."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    NEEDS_HELP = "needs_help"


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    salesperson_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[TaskStatus] = mapped_column(Enum(TaskStatus), nullable=False, default=TaskStatus.TODO)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    company_id: Mapped[str | None] = mapped_column(ForeignKey("companies.id"))
    due_date: Mapped[date | None] = mapped_column(Date)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relations
    company: Mapped["Company | None"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<Task {self.title} [{self.status.value}#{self.position}]>"
