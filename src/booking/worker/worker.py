import json
import logging
import asyncio

from faststream.rabbit import RabbitBroker
from faststream import FastStream

from src.booking.core.settings import settings
from src.booking.infra.mailer import send_mail
from src.booking.notifications.emails import from_payload

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

broker = RabbitBroker(settings.RABBIT_URL)
app = FastStream(broker)


async def deliver(payload: dict) -> bool:
    """
    Одна попытка доставки. При сбое письмо переставляется в очередь
    с attempt + 1 и линейной задержкой, после MAIL_MAX_ATTEMPTS – отбрасывается.
    """
    attempt = int(payload.get("attempt") or 1)
    msg = from_payload(payload)

    try:
        # smtplib блокирующий
        await asyncio.to_thread(send_mail, msg)
        logger.info("mail to=%s DONE (attempt %s)", msg.to, attempt)
        return True

    except Exception as exc:
        if attempt >= settings.MAIL_MAX_ATTEMPTS:
            logger.exception("mail to=%s FAILED after %s attempts: %s", msg.to, attempt, exc)
            return False

        logger.warning("mail to=%s attempt %s failed: %s, retrying", msg.to, attempt, exc)
        await asyncio.sleep(settings.MAIL_RETRY_DELAY_SECONDS * attempt)
        await broker.publish(json.dumps({**payload, "attempt": attempt + 1}), queue=settings.MAIL_QUEUE)
        return False


@broker.subscriber(settings.MAIL_QUEUE)
async def handle(body: str) -> None:
    await deliver(json.loads(body))

if __name__ == "__main__":
    asyncio.run(app.run())
