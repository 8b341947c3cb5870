# access_ledger/infrastructure/messaging/rabbitmq_publisher.py

import json
import logging

import aio_pika

from access_ledger.application.exceptions import NotificationFailureError
from access_ledger.application.notifier import EXCHANGE_RBAC_EVENTS, RoleChangeEvent

logger = logging.getLogger(__name__)


class RabbitMQRoleChangeNotifier:
    """Publishes RoleChangeEvents to the ``rbac_events`` topic exchange. Implements RoleChangeNotifier."""

    def __init__(self, url: str, exchange_name: str = EXCHANGE_RBAC_EVENTS):
        self._url = url
        self._exchange_name = exchange_name
        self._connection = None
        self._channel = None
        self._exchange = None

    async def connect(self):
        self._connection = await aio_pika.connect_robust(self._url)
        self._channel = await self._connection.channel()
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )

    async def notify(self, event: RoleChangeEvent) -> None:
        try:
            if self._exchange is None:
                await self.connect()
            msg = aio_pika.Message(
                body=json.dumps(event.to_message()).encode(),
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            )
            await self._exchange.publish(msg, routing_key=event.routing_key)
        except Exception as exc:
            raise NotificationFailureError(
                f"Failed to publish {event.event_type} for {event.subject}: {exc}"
            ) from exc
        logger.info(
            "role_change_published",
            extra={"event_type": event.event_type, "subject": event.subject},
        )

    async def close(self):
        if self._connection is not None:
            await self._connection.close()
        self._connection = None
        self._channel = None
        self._exchange = None
