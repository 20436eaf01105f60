import logging
from typing import Any, Awaitable, Callable

from src.booking.domain.value_objects import MailMessage
from src.booking.notifications.emails import to_payload

logger = logging.getLogger(__name__)

MailPublisher = Callable[[dict[str, Any]], Awaitable[None]]


async def publish_mail(publish: MailPublisher, msg: MailMessage) -> None:
    """Ставит письмо в очередь. Ошибку публикации отдаёт вызывающему."""
    await publish(to_payload(msg))
    logger.info("mail enqueued to=%s subject=%s", msg.to, msg.subject)


async def publish_mail_quietly(publish: MailPublisher, msg: MailMessage) -> bool:
    """Для писем после коммита: сбой очереди логируем, но запрос не валим."""
    try:
        await publish_mail(publish, msg)
        return True
    except Exception:
        logger.exception("mail enqueue failed to=%s subject=%s", msg.to, msg.subject)
        return False
