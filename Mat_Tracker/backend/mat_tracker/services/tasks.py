"""
Kanban naloge prodajalca / Salesperson Kanban tasks.
Pozicija je zaporedna znotraj (prodajalec, status) / Position is dense within (salesperson, status).
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.models.task import Task, TaskStatus
from mat_tracker.models.user import User, UserRole
from mat_tracker.services.errors import NotFoundError, PermissionDeniedError, ValidationError, flush_changes
from mat_tracker.utils.timeutils import utcnow

EDITABLE_FIELDS = ("title", "description", "company_id", "due_date")


class TaskService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _column(self, salesperson_id: str, status: TaskStatus, exclude_id: str | None = None) -> list[Task]:
        query = (
            select(Task)
            .where(
                Task.salesperson_id == salesperson_id,
                Task.status == status,
                Task.archived_at.is_(None),
            )
            .order_by(Task.position)
        )
        if exclude_id:
            query = query.where(Task.id != exclude_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, task_id: str, actor: User) -> Task:
        task = await self.db.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found")
        if task.salesperson_id != actor.id and actor.role != UserRole.ADMIN:
            raise PermissionDeniedError("Task belongs to another salesperson")
        return task

    async def list_tasks(self, salesperson_id: str) -> list[Task]:
        result = await self.db.execute(
            select(Task)
            .where(Task.salesperson_id == salesperson_id, Task.archived_at.is_(None))
            .order_by(Task.position)
        )
        return list(result.scalars().all())

    async def create(self, actor: User, data: dict) -> Task:
        """Nova naloga na koncu stolpca / New task appended to its column."""
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Task title is required")
        status = TaskStatus(data.get("status") or TaskStatus.TODO)
        max_position = await self.db.scalar(
            select(func.max(Task.position)).where(
                Task.salesperson_id == actor.id,
                Task.status == status,
                Task.archived_at.is_(None),
            )
        )
        task = Task(
            salesperson_id=actor.id,
            title=title,
            status=status,
            position=(-1 if max_position is None else max_position) + 1,
            **{k: data.get(k) for k in EDITABLE_FIELDS if k != "title" and k in data},
        )
        self.db.add(task)
        await flush_changes(self.db, "task")
        return task

    async def move(self, task_id: str, actor: User, status: TaskStatus, position: int) -> Task:
        """Premik med stolpci; luknje se zaprejo / Move between columns, closing gaps."""
        task = await self.get(task_id, actor)

        source = await self._column(task.salesperson_id, task.status, exclude_id=task.id)
        for index, other in enumerate(source):
            other.position = index

        target = source if status == task.status else await self._column(task.salesperson_id, status, exclude_id=task.id)
        position = max(0, min(position, len(target)))
        target.insert(position, task)
        task.status = status
        for index, other in enumerate(target):
            other.position = index

        await flush_changes(self.db, "task")
        return task

    async def reorder(self, actor: User, updates: list[dict]) -> list[Task]:
        """Paketna posodobitev pozicij / Batch position update.

        Dve nalogi ne smeta imeti iste pozicije v istem stolpcu.
        """
        slots = [(TaskStatus(u["status"]), u["position"]) for u in updates]
        if len(set(slots)) != len(slots):
            raise ValidationError("Duplicate positions within a column")

        tasks = []
        for update, (status, position) in zip(updates, slots):
            task = await self.get(update["id"], actor)
            task.status = status
            task.position = position
            tasks.append(task)
        await flush_changes(self.db, "task")
        return tasks

    async def update(self, task_id: str, actor: User, data: dict) -> Task:
        task = await self.get(task_id, actor)
        for key in EDITABLE_FIELDS:
            if key in data:
                setattr(task, key, data[key])
        if not (task.title or "").strip():
            raise ValidationError("Task title is required")
        await flush_changes(self.db, "task")
        return task

    async def archive(self, task_id: str, actor: User) -> Task:
        task = await self.get(task_id, actor)
        task.archived_at = utcnow()
        await flush_changes(self.db, "task")
        return task

    async def delete(self, task_id: str, actor: User) -> None:
        task = await self.get(task_id, actor)
        await self.db.delete(task)
        await flush_changes(self.db, "task")
