import json
from typing import Any
from faststream.rabbit import RabbitBroker

from src.booking.core.settings import settings

broker = RabbitBroker(settings.RABBIT_URL)

async def start_broker() -> None:
    await broker.start()

async def stop_broker() -> None:
    await broker.stop()

async def enqueue_email(payload: dict[str, Any]) -> None:
    await broker.publish(json.dumps(payload), queue=settings.MAIL_QUEUE)
