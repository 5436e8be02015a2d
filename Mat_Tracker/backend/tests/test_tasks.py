"""Testi Kanban nalog / Kanban task tests."""

import pytest

from mat_tracker.models.task import TaskStatus
from mat_tracker.models.user import UserRole
from mat_tracker.services.errors import PermissionDeniedError, ValidationError
from mat_tracker.services.tasks import TaskService


async def _board(service, seller, *titles):
    return [await service.create(seller, {"title": title}) for title in titles]


def _column(tasks, status):
    return [t.title for t in sorted((t for t in tasks if t.status == status), key=lambda t: t.position)]


@pytest.mark.asyncio
async def test_create_appends_to_column(db, seller):
    service = TaskService(db)
    tasks = await _board(service, seller, "Pokliči Acme", "Pošlji ponudbo", "Obisk Bistro")

    assert [t.position for t in tasks] == [0, 1, 2]
    assert all(t.status == TaskStatus.TODO for t in tasks)
    done = await service.create(seller, {"title": "Zaključeno", "status": "done"})
    assert done.position == 0

    with pytest.raises(ValidationError):
        await service.create(seller, {"title": "   "})


@pytest.mark.asyncio
async def test_move_between_columns_closes_gaps(db, seller):
    service = TaskService(db)
    a, b, c = await _board(service, seller, "A", "B", "C")
    (d,) = await _board(service, seller, "D")
    await service.move(d.id, seller, TaskStatus.IN_PROGRESS, 0)

    await service.move(b.id, seller, TaskStatus.IN_PROGRESS, 0)

    tasks = await service.list_tasks(seller.id)
    assert _column(tasks, TaskStatus.TODO) == ["A", "C"]
    assert _column(tasks, TaskStatus.IN_PROGRESS) == ["B", "D"]
    assert sorted(t.position for t in tasks if t.status == TaskStatus.TODO) == [0, 1]


@pytest.mark.asyncio
async def test_move_within_column(db, seller):
    service = TaskService(db)
    a, b, c = await _board(service, seller, "A", "B", "C")

    await service.move(a.id, seller, TaskStatus.TODO, 99)

    tasks = await service.list_tasks(seller.id)
    assert _column(tasks, TaskStatus.TODO) == ["B", "C", "A"]


@pytest.mark.asyncio
async def test_reorder_rejects_duplicate_slots(db, seller):
    service = TaskService(db)
    a, b = await _board(service, seller, "A", "B")

    with pytest.raises(ValidationError):
        await service.reorder(seller, [
            {"id": a.id, "status": "todo", "position": 0},
            {"id": b.id, "status": "todo", "position": 0},
        ])

    await service.reorder(seller, [
        {"id": a.id, "status": "needs_help", "position": 0},
        {"id": b.id, "status": "todo", "position": 0},
    ])
    assert a.status == TaskStatus.NEEDS_HELP
    assert b.position == 0


@pytest.mark.asyncio
async def test_archive_hides_task(db, seller):
    service = TaskService(db)
    a, b = await _board(service, seller, "A", "B")

    await service.archive(a.id, seller)
    assert [t.title for t in await service.list_tasks(seller.id)] == ["B"]

    await service.delete(b.id, seller)
    assert await service.list_tasks(seller.id) == []


@pytest.mark.asyncio
async def test_foreign_task_denied(db, seller, make_user, admin):
    service = TaskService(db)
    (task,) = await _board(service, seller, "A")
    other = await make_user(UserRole.PRODAJALEC, prefix="STAN")

    with pytest.raises(PermissionDeniedError):
        await service.update(task.id, other, {"title": "B"})

    await service.update(task.id, admin, {"title": "Preimenovano"})
    assert task.title == "Preimenovano"
