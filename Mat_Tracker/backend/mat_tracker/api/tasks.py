"""Poti Kanban nalog / Kanban task API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.user import User, UserRole
from mat_tracker.schemas.task import TaskCreate, TaskMove, TaskPosition, TaskRead, TaskUpdate
from mat_tracker.services.tasks import TaskService

router = APIRouter()


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    salesperson_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tasks", "read")),
):
    """Naloge prodajalca; drugi prodajalci samo za admin/inventar."""
    if user.role == UserRole.PRODAJALEC or not salesperson_id:
        salesperson_id = user.id
    return await TaskService(db).list_tasks(salesperson_id)


@router.post("/", response_model=TaskRead, status_code=201)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tasks", "create")),
):
    return await TaskService(db).create(user, data.model_dump(exclude_unset=True))


@router.put("/reorder", response_model=list[TaskRead])
async def reorder_tasks(
    data: list[TaskPosition],
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tasks", "update")),
):
    return await TaskService(db).reorder(user, [p.model_dump() for p in data])


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tasks", "update")),
):
    return await TaskService(db).update(task_id, user, data.model_dump(exclude_unset=True))


@router.post("/{task_id}/move", response_model=TaskRead)
async def move_task(
    task_id: str,
    data: TaskMove,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tasks", "update")),
):
    return await TaskService(db).move(task_id, user, data.status, data.position)


@router.post("/{task_id}/archive", response_model=TaskRead)
async def archive_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tasks", "update")),
):
    return await TaskService(db).archive(task_id, user)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tasks", "delete")),
):
    await TaskService(db).delete(task_id, user)
