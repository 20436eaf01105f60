from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.booking.api.deps import UserContext, require_admin, get_plans_service
from src.booking.api.schemas import (
    PlanCreateRequest, PlanUpdateRequest, PlanResponse, PlansPageResponse,
    MessageResponse, page_payload,
)
from src.booking.services.plans_service import PlansService


router = APIRouter(prefix="/api/plans", tags=["plans"])
admin_router = APIRouter(prefix="/api/admin/plans", tags=["admin-plans"])


@router.get("", response_model=list[PlanResponse])
def list_active_plans(svc: PlansService = Depends(get_plans_service)):
    """Активные планы, дешёвые первыми."""
    return svc.list_active()


@admin_router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    req: PlanCreateRequest,
    ctx: UserContext = Depends(require_admin),
    svc: PlansService = Depends(get_plans_service),
):
    try:
        return svc.create_plan(created_by=ctx.user_id, **req.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@admin_router.get("", response_model=PlansPageResponse)
def list_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_active: Optional[bool] = None,
    ctx: UserContext = Depends(require_admin),
    svc: PlansService = Depends(get_plans_service),
):
    items, total = svc.list_plans(page=page, limit=limit, is_active=is_active)
    return page_payload(items, total, page, limit)


@admin_router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: int,
    ctx: UserContext = Depends(require_admin),
    svc: PlansService = Depends(get_plans_service),
):
    p = svc.get_plan(plan_id)
    if not p:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription plan not found")
    return p


@admin_router.put("/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: int,
    req: PlanUpdateRequest,
    ctx: UserContext = Depends(require_admin),
    svc: PlansService = Depends(get_plans_service),
):
    fields = req.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")
    try:
        return svc.update_plan(plan_id, **fields)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@admin_router.delete("/{plan_id}", response_model=MessageResponse)
def delete_plan(
    plan_id: int,
    ctx: UserContext = Depends(require_admin),
    svc: PlansService = Depends(get_plans_service),
):
    svc.delete_plan(plan_id)
    return MessageResponse(message="Subscription plan deleted")


@admin_router.patch("/{plan_id}/toggle", response_model=PlanResponse)
def toggle_plan(
    plan_id: int,
    ctx: UserContext = Depends(require_admin),
    svc: PlansService = Depends(get_plans_service),
):
    return svc.toggle_plan(plan_id)
