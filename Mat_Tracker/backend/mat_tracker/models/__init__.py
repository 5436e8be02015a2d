"""
SQLAlchemy modeli / SQLAlchemy models.
Vse modele uvozi tukaj, da jih metadata zazna.
Import all models here so the metadata registers them.
"""

from mat_tracker.models.user import User, UserRole
from mat_tracker.models.mat_type import MatType, MatCategory
from mat_tracker.models.order import CodeOrder, OrderStatus
from mat_tracker.models.qr_code import QRCode, QRStatus
from mat_tracker.models.company import Company, Contact, PipelineStatus
from mat_tracker.models.cycle import Cycle, CycleHistory, CycleStatus, ContractFrequency
from mat_tracker.models.driver_pickup import DriverPickup, DriverPickupItem, PickupStatus
from mat_tracker.models.reminder import Reminder, ReminderType
from mat_tracker.models.task import Task, TaskStatus
from mat_tracker.models.audit import AuditLog

__all__ = [
    "User",
    "UserRole",
    "MatType",
    "MatCategory",
    "CodeOrder",
    "OrderStatus",
    "QRCode",
    "QRStatus",
    "Company",
    "Contact",
    "PipelineStatus",
    "Cycle",
    "CycleHistory",
    "CycleStatus",
    "ContractFrequency",
    "DriverPickup",
    "DriverPickupItem",
    "PickupStatus",
    "Reminder",
    "ReminderType",
    "Task",
    "TaskStatus",
    "AuditLog",
]
