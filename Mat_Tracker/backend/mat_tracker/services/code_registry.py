"""
Register QR kod / QR code registry.
Dodeljevanje unikatnih kod oblike PREFIX-XXXX po prodajalcih.
Allocates unique PREFIX-XXXX codes partitioned by salesperson prefix.
"""

import logging
import re
import secrets
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.config import settings
from mat_tracker.models.cycle import Cycle, CycleStatus
from mat_tracker.models.qr_code import QRCode, QRStatus
from mat_tracker.models.user import User, UserRole
from mat_tracker.services.audit import log_audit
from mat_tracker.services.errors import (
    CodeGenerationShortfallError,
    ConstraintViolationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    flush_changes,
)
from mat_tracker.utils.timeutils import utcnow

log = logging.getLogger(__name__)

# Brez 0/O, 1/I, L / Without 0/O, 1/I, L
CODE_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"
PREFIX_PATTERN = re.compile(r"^[A-Z0-9]+$")


def random_suffix(length: int | None = None, choice: Callable[[str], str] = secrets.choice) -> str:
    length = length or settings.CODE_SUFFIX_LENGTH
    return "".join(choice(CODE_ALPHABET) for _ in range(length))


def generate_unique_codes(
    prefix: str,
    count: int,
    existing: set[str],
    choice: Callable[[str], str] = secrets.choice,
) -> list[str]:
    """Generiraj `count` novih kod / Generate `count` fresh codes.

    Vsaka koda se preveri proti `existing` in proti že generiranim v tem klicu.
    Po `count * CODE_ATTEMPTS_PER_CODE` poskusih brez uspeha sproži
    CodeGenerationShortfallError; nikoli ne vrne krajšega seznama.
    """
    if not PREFIX_PATTERN.match(prefix or ""):
        raise ValidationError(f"Invalid code prefix: {prefix!r}")
    if count < 1:
        raise ValidationError("Count must be at least 1")

    generated: list[str] = []
    seen: set[str] = set()
    max_attempts = count * settings.CODE_ATTEMPTS_PER_CODE
    attempts = 0

    while len(generated) < count and attempts < max_attempts:
        code = f"{prefix}-{random_suffix(choice=choice)}"
        if code not in existing and code not in seen:
            generated.append(code)
            seen.add(code)
        attempts += 1

    if len(generated) < count:
        raise CodeGenerationShortfallError(requested=count, partial=generated)
    return generated


class CodeRegistryService:
    """Upravljanje QR kod / QR code management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _existing_codes(self, prefix: str) -> set[str]:
        result = await self.db.execute(select(QRCode.code).where(QRCode.code.like(f"{prefix}-%")))
        return set(result.scalars().all())

    async def _get_owner(self, owner_id: str) -> User:
        owner = await self.db.get(User, owner_id)
        if not owner:
            raise NotFoundError("Owner not found")
        return owner

    async def create_codes(
        self,
        count: int,
        actor: User,
        owner_id: str | None = None,
        prefix: str | None = None,
        order_id: str | None = None,
    ) -> list[QRCode]:
        """Ustvari nove kode / Create and persist new codes.

        Z lastnikom so kode takoj `available`, brez lastnika `pending`.
        With an owner the codes are `available` right away, without one `pending`.
        """
        if owner_id:
            owner = await self._get_owner(owner_id)
            prefix = prefix or owner.code_prefix
        if not prefix:
            raise ValidationError("A code prefix is required")

        codes = generate_unique_codes(prefix, count, await self._existing_codes(prefix))
        status = QRStatus.AVAILABLE if owner_id else QRStatus.PENDING
        rows = [QRCode(code=c, owner_id=owner_id, status=status, order_id=order_id) for c in codes]
        self.db.add_all(rows)
        await flush_changes(self.db, "QR codes")

        log.info("Generated %d codes with prefix %s for owner %s", len(rows), prefix, owner_id)
        log_audit(self.db, "qr_code", prefix, "GENERATE", actor, {"count": len(rows), "owner_id": owner_id})
        return rows

    async def assign_owner(self, code_ids: list[str], owner_id: str, actor: User) -> list[QRCode]:
        """Dodeli kode prodajalcu / Hand pending codes to a salesperson (pending -> available)."""
        owner = await self._get_owner(owner_id)
        if owner.role != UserRole.PRODAJALEC:
            raise ValidationError("Codes can only be assigned to a salesperson")

        result = await self.db.execute(select(QRCode).where(QRCode.id.in_(code_ids)))
        codes = list(result.scalars().all())
        if len(codes) != len(set(code_ids)):
            raise NotFoundError("One or more codes not found")

        for code in codes:
            if code.status != QRStatus.PENDING:
                raise InvalidTransitionError(f"Code {code.code} is {code.status.value}, expected pending")
            code.owner_id = owner_id
            code.status = QRStatus.AVAILABLE

        await flush_changes(self.db, "QR codes")
        log_audit(self.db, "qr_code", owner_id, "ASSIGN", actor, {"codes": [c.code for c in codes]})
        return codes

    async def list_codes(self, owner_id: str | None = None, status: QRStatus | None = None) -> list[QRCode]:
        query = select(QRCode).order_by(QRCode.code)
        if owner_id is not None:
            query = query.where(QRCode.owner_id == owner_id)
        if status is not None:
            query = query.where(QRCode.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_code(self, code: str) -> QRCode:
        result = await self.db.execute(select(QRCode).where(QRCode.code == code))
        qr = result.scalar_one_or_none()
        if not qr:
            raise NotFoundError(f"QR code {code} not found")
        return qr

    async def has_open_cycle(self, qr_code_id: str) -> bool:
        count = await self.db.scalar(
            select(func.count(Cycle.id)).where(
                Cycle.qr_code_id == qr_code_id,
                Cycle.status != CycleStatus.COMPLETED,
            )
        )
        return bool(count)

    async def delete_code(self, code_id: str, actor: User) -> None:
        """Brisanje kode (samo brez odprtega cikla) / Delete a code with no open cycle."""
        qr = await self.db.get(QRCode, code_id)
        if not qr:
            raise NotFoundError("QR code not found")
        if await self.has_open_cycle(qr.id):
            raise ConstraintViolationError(f"Code {qr.code} is bound to an open cycle")

        log_audit(self.db, "qr_code", qr.id, "DELETE", actor, {"code": qr.code})
        await self.db.delete(qr)
        await flush_changes(self.db, "QR code")
        log.info("Deleted code %s", qr.code)

    async def inventory_by_seller(self) -> list[dict]:
        """Stanje po prodajalcih / Per-salesperson inventory counts."""
        sellers_result = await self.db.execute(
            select(User)
            .where(User.role == UserRole.PRODAJALEC, User.is_active.is_(True))
            .order_by(User.last_name, User.first_name)
        )
        sellers = list(sellers_result.scalars().all())

        cycle_rows = await self.db.execute(
            select(Cycle.salesperson_id, Cycle.status, func.count(Cycle.id))
            .where(Cycle.status != CycleStatus.COMPLETED)
            .group_by(Cycle.salesperson_id, Cycle.status)
        )
        per_seller: dict[str, dict[CycleStatus, int]] = {}
        for seller_id, status, count in cycle_rows.all():
            per_seller.setdefault(seller_id, {})[status] = count

        free_rows = await self.db.execute(
            select(QRCode.owner_id, func.count(QRCode.id))
            .outerjoin(Cycle, and_(Cycle.qr_code_id == QRCode.id, Cycle.status != CycleStatus.COMPLETED))
            .where(QRCode.status == QRStatus.AVAILABLE, Cycle.id.is_(None))
            .group_by(QRCode.owner_id)
        )
        free_codes = dict(free_rows.all())

        report = []
        for seller in sellers:
            counts = per_seller.get(seller.id, {})
            report.append({
                "seller_id": seller.id,
                "seller_name": seller.full_name,
                "code_prefix": seller.code_prefix,
                "free_codes": free_codes.get(seller.id, 0),
                "clean": counts.get(CycleStatus.CLEAN, 0),
                "on_test": counts.get(CycleStatus.ON_TEST, 0),
                "dirty": counts.get(CycleStatus.DIRTY, 0),
                "waiting_driver": counts.get(CycleStatus.WAITING_DRIVER, 0),
                "total": sum(counts.values()),
            })
        return report

    def reset_code(self, qr: QRCode, when: datetime | None = None) -> None:
        """Vrni kodo v prosti nabor / Return a code to the free pool."""
        qr.status = QRStatus.AVAILABLE if qr.owner_id else QRStatus.PENDING
        qr.last_reset_at = when or utcnow()
