from typing import Any, Optional

from src.booking.domain.contracts.uow import UoW
from src.booking.domain.entities.plan import SubscriptionPlan
from src.booking.domain.errors import NotFound, Conflict


class PlansService:
    def __init__(self, uow: UoW):
        self.uow = uow

    def list_active(self) -> list[SubscriptionPlan]:
        return self.uow.plans.list_active()

    def list_plans(self, page: int = 1, limit: int = 10, is_active: Optional[bool] = None):
        return self.uow.plans.list(page=page, limit=limit, is_active=is_active)

    def get_plan(self, plan_id: int) -> Optional[SubscriptionPlan]:
        return self.uow.plans.get_by_id(plan_id)

    def create_plan(self, created_by: int, **fields: Any) -> SubscriptionPlan:
        try:
            if self.uow.plans.get_by_name(fields["name"]):
                raise Conflict("Subscription plan with this name already exists.")

            plan = self.uow.plans.create(created_by=created_by, **fields)
            self.uow.commit()
            return plan

        except Exception:
            self.uow.rollback()
            raise

    def update_plan(self, plan_id: int, **fields: Any) -> SubscriptionPlan:
        try:
            plan = self.uow.plans.get_by_id(plan_id)
            if not plan:
                raise NotFound("Subscription plan not found.")

            name = fields.get("name")
            if name and name != plan.name:
                other = self.uow.plans.get_by_name(name)
                if other and other.id != plan_id:
                    raise Conflict("Subscription plan with this name already exists.")

            spm = fields.get("sessions_per_month", plan.sessions_per_month)
            spw = fields.get("sessions_per_week", plan.sessions_per_week)
            if spw > spm:
                raise ValueError("Sessions per week cannot exceed sessions per month.")

            updated = self.uow.plans.update(plan_id, **fields)
            self.uow.commit()
            return updated

        except Exception:
            self.uow.rollback()
            raise

    def delete_plan(self, plan_id: int) -> None:
        try:
            if not self.uow.plans.delete(plan_id):
                raise NotFound("Subscription plan not found.")
            self.uow.commit()
        except Exception:
            self.uow.rollback()
            raise

    def toggle_plan(self, plan_id: int) -> SubscriptionPlan:
        plan = self.uow.plans.get_by_id(plan_id)
        if not plan:
            raise NotFound("Subscription plan not found.")
        return self.update_plan(plan_id, is_active=not plan.is_active)
