from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.booking.api.deps import (
    UserContext, require_admin, get_admin_subscriptions_service, get_users_service,
)
from src.booking.api.schemas import (
    SubscriptionResponse, SubscriptionsPageResponse, SubscriptionStatusRequest,
    SessionUpdateRequest, UserResponse, UsersPageResponse, UserActiveRequest,
    MessageResponse, subscription_to_response, page_payload,
)
from src.booking.domain.enums import SubscriptionStatus, UserRole
from src.booking.services.admin_subscriptions_service import AdminSubscriptionsService
from src.booking.services.users_service import UsersService


router = APIRouter(prefix="/api/admin", tags=["admin"])


# Subscriptions
@router.get("/subscriptions", response_model=SubscriptionsPageResponse)
def list_subscriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
    user_email: Optional[str] = None,
    plan_name: Optional[str] = None,
    ctx: UserContext = Depends(require_admin),
    svc: AdminSubscriptionsService = Depends(get_admin_subscriptions_service),
):
    items, total = svc.list_subscriptions(
        page=page,
        limit=limit,
        status=status_filter.value if status_filter else None,
        user_email=user_email,
        plan_name=plan_name,
    )
    return page_payload([subscription_to_response(s) for s in items], total, page, limit)


@router.get("/subscriptions/stats")
def subscription_stats(
    ctx: UserContext = Depends(require_admin),
    svc: AdminSubscriptionsService = Depends(get_admin_subscriptions_service),
) -> dict[str, Any]:
    return svc.stats()


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
def get_subscription(
    subscription_id: int,
    display_country: Optional[str] = None,
    ctx: UserContext = Depends(require_admin),
    svc: AdminSubscriptionsService = Depends(get_admin_subscriptions_service),
):
    sub = svc.get_subscription(subscription_id)
    if not sub:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return subscription_to_response(sub, display_country)


@router.delete("/subscriptions/{subscription_id}", response_model=MessageResponse)
def delete_subscription(
    subscription_id: int,
    ctx: UserContext = Depends(require_admin),
    svc: AdminSubscriptionsService = Depends(get_admin_subscriptions_service),
):
    svc.delete_subscription(subscription_id)
    return MessageResponse(message="Subscription deleted")


@router.patch("/subscriptions/{subscription_id}/status", response_model=SubscriptionResponse)
def update_subscription_status(
    subscription_id: int,
    req: SubscriptionStatusRequest,
    ctx: UserContext = Depends(require_admin),
    svc: AdminSubscriptionsService = Depends(get_admin_subscriptions_service),
):
    try:
        sub = svc.update_status(
            subscription_id,
            status=req.status,
            payment_status=req.payment_status,
            notes=req.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return subscription_to_response(sub)


@router.patch("/subscriptions/{subscription_id}/sessions/{slot_id}", response_model=SubscriptionResponse)
def update_session(
    subscription_id: int,
    slot_id: int,
    req: SessionUpdateRequest,
    ctx: UserContext = Depends(require_admin),
    svc: AdminSubscriptionsService = Depends(get_admin_subscriptions_service),
):
    try:
        sub = svc.update_session(subscription_id, slot_id, status=req.status, notes=req.notes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return subscription_to_response(sub)


# Users
@router.get("/users", response_model=UsersPageResponse)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = None,
    ctx: UserContext = Depends(require_admin),
    svc: UsersService = Depends(get_users_service),
):
    items, total = svc.list_users(page=page, limit=limit, role=role.value if role else None)
    return page_payload(items, total, page, limit)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    ctx: UserContext = Depends(require_admin),
    svc: UsersService = Depends(get_users_service),
):
    u = svc.get_user(user_id)
    if not u:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return u


@router.patch("/users/{user_id}/active", response_model=UserResponse)
def set_user_active(
    user_id: int,
    req: UserActiveRequest,
    ctx: UserContext = Depends(require_admin),
    svc: UsersService = Depends(get_users_service),
):
    try:
        return svc.set_active(user_id, req.is_active, actor_id=ctx.user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    ctx: UserContext = Depends(require_admin),
    svc: UsersService = Depends(get_users_service),
):
    try:
        svc.delete_user(user_id, actor_id=ctx.user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return MessageResponse(message="User deleted")
