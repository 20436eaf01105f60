"""
Ошибки бронирования.

Все ошибки планировщика клиентские (4xx): отдаются как есть,
с перечнем полей запроса, к которым относятся. Автоматически не ретраятся.
"""
from typing import Optional, Sequence


class SchedulingError(Exception):
    code = "scheduling_error"
    status_code = 400

    def __init__(self, message: str, fields: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields or [])

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "fields": self.fields}


class InvalidInput(SchedulingError):
    code = "invalid_input"


class InvalidDateTime(InvalidInput):
    code = "invalid_datetime"


class PastTime(SchedulingError):
    code = "past_time"


class OutOfWindow(SchedulingError):
    code = "out_of_window"


class WeeklyCapExceeded(SchedulingError):
    code = "weekly_cap_exceeded"


class DuplicateInBatch(SchedulingError):
    code = "duplicate_in_batch"


class SlotConflict(SchedulingError):
    code = "slot_conflict"
    status_code = 409


class PlanMismatch(SchedulingError):
    code = "plan_mismatch"


class BatchRejected(SchedulingError):
    """Пакет сессий отклонён целиком. Несёт все найденные нарушения."""

    def __init__(self, violations: Sequence[SchedulingError]):
        if not violations:
            raise ValueError("BatchRejected requires at least one violation")
        first = violations[0]
        super().__init__(first.message, first.fields)
        self.violations = list(violations)
        self.code = first.code
        self.status_code = first.status_code

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "violations": [v.to_dict() for v in self.violations],
        }


# CRUD
class NotFound(Exception):
    pass


class Conflict(Exception):
    pass
