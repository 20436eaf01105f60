import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.booking.api.deps import (
    UserContext, get_current_user_ctx, get_subscriptions_service, get_users_service,
    get_mail_publisher,
)
from src.booking.api.schemas import (
    CreateSubscriptionRequest, SubscriptionResponse, UserResponse,
    subscription_to_response,
)
from src.booking.domain.value_objects import SessionRequest
from src.booking.notifications.emails import subscription_confirmed_email
from src.booking.services.mail_dispatch import MailPublisher, publish_mail_quietly
from src.booking.services.subscriptions_service import SubscriptionsService
from src.booking.services.users_service import UsersService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/profile", response_model=UserResponse)
def profile(
    ctx: UserContext = Depends(get_current_user_ctx),
    svc: UsersService = Depends(get_users_service),
):
    return svc.get_profile(ctx.user_id)


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    req: CreateSubscriptionRequest,
    ctx: UserContext = Depends(get_current_user_ctx),
    svc: SubscriptionsService = Depends(get_subscriptions_service),
    users: UsersService = Depends(get_users_service),
    publish: MailPublisher = Depends(get_mail_publisher),
):
    """
    Подписка + все сессии одним запросом.
    Время сессий – локальное для страны пользователя; хранится в UTC.
    """
    try:
        sub = svc.create_subscription(
            user_id=ctx.user_id,
            plan_id=req.subscription_plan_id,
            start_date=req.start_date,
            sessions=[SessionRequest(date=s.date, time=s.time, notes=s.notes) for s in req.sessions],
            user_country=req.user_country,
            notes=req.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # подписка уже сохранена: проблемы с письмом только логируем
    try:
        msg = subscription_confirmed_email(sub, name=users.get_profile(ctx.user_id).display_name)
    except Exception:
        logger.exception("confirmation email build failed for subscription %s", sub.id)
    else:
        await publish_mail_quietly(publish, msg)

    return subscription_to_response(sub)


@router.get("/subscriptions", response_model=list[SubscriptionResponse])
def list_subscriptions(
    display_country: Optional[str] = None,
    ctx: UserContext = Depends(get_current_user_ctx),
    svc: SubscriptionsService = Depends(get_subscriptions_service),
):
    return [subscription_to_response(s, display_country) for s in svc.list_for_user(ctx.user_id)]
