"""
Napake domene / Domain errors.
Vsaka napaka nosi vrsto, sporočilo, ali je ponovljiva, in HTTP status.
Each error carries a kind, a message, whether it is recoverable, and an HTTP status.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError


class DomainError(Exception):
    """Osnovna napaka / Base domain error."""

    kind = "domain_error"
    status_code = 400
    recoverable = True

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind, "recoverable": self.recoverable, **self.extra}


class NotFoundError(DomainError):
    kind = "not_found"
    status_code = 404


class ConstraintViolationError(DomainError):
    kind = "constraint_violation"
    status_code = 409


class InvalidTransitionError(DomainError):
    kind = "invalid_transition"
    status_code = 409


class ValidationError(DomainError):
    kind = "validation"
    status_code = 422


class PermissionDeniedError(DomainError):
    """Ne ponavljaj / Never retried."""
    kind = "permission_denied"
    status_code = 403
    recoverable = False


class ConcurrencyConflictError(DomainError):
    kind = "concurrency_conflict"
    status_code = 409


class TransientError(DomainError):
    kind = "transient"
    status_code = 503


class CodeGenerationShortfallError(DomainError):
    """Premalo unikatnih kod / Fewer unique codes than requested.

    Delni seznam se zavrže, a je priložen / The partial list is discarded but attached.
    """
    kind = "code_generation_shortfall"
    status_code = 409

    def __init__(self, requested: int, partial: list[str]):
        super().__init__(
            f"Generated only {len(partial)} of {requested} unique codes",
            requested=requested,
            generated=len(partial),
        )
        self.requested = requested
        self.partial = partial


class CompoundWriteError(DomainError):
    """Sestavljeno pisanje ni uspelo na koraku / Compound write failed at a step.

    `completed_steps` navaja samo trajno shranjene korake; ob `rolled_back` je prazen.
    `completed_steps` lists only steps that stay persisted; empty when `rolled_back`.
    """
    kind = "compound_write"
    status_code = 500

    def __init__(self, message: str, completed_steps: list[str], failed_step: str, rolled_back: bool = False):
        super().__init__(
            message, completed_steps=completed_steps, failed_step=failed_step, rolled_back=rolled_back
        )
        self.completed_steps = completed_steps
        self.failed_step = failed_step
        self.rolled_back = rolled_back


async def flush_changes(db: AsyncSession, what: str = "record") -> None:
    """Flush s prevodom napak baze / Flush, translating storage errors to domain errors."""
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConstraintViolationError(f"Constraint violated while saving {what}") from exc
    except StaleDataError as exc:
        raise ConcurrencyConflictError(f"{what} was modified concurrently, reload and retry") from exc
