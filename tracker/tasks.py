"""
Celery tasks for the tracker.

Notification delivery is a one-shot outbox consumer: each TelegramMessage
is pushed once and marked sent or failed. Failed messages are not retried;
retrying is a matter of re-enqueueing pending or failed records.
"""

import logging

from celery import shared_task
from django.utils import timezone

from tracker.errors import NotificationDispatchFailure
from tracker.models import DeliveryStatusChoices
from tracker.monitoring.sentry_integration import capture_crawler_error
from tracker.services.telegram_client import TelegramClient
from tracker.store import TrackerStore

logger = logging.getLogger(__name__)


@shared_task(name="tracker.tasks.deliver_notification", ignore_result=True)
def deliver_notification(record_id: str) -> str:
    """
    Push one outbox record to Telegram.

    Args:
        record_id: TelegramMessage id

    Returns:
        Final delivery status of the record
    """
    store = TrackerStore()
    record = store.get_telegram_message(record_id)

    if record is None:
        logger.warning(f"Notification {record_id} does not exist")
        return "missing"

    if record.delivery_status != DeliveryStatusChoices.PENDING:
        logger.info(f"Notification {record_id} already {record.delivery_status}, skipping")
        return record.delivery_status

    client = TelegramClient()
    record.attempted_at = timezone.now()

    try:
        client.send_message(record.recipient, record.message)
    except NotificationDispatchFailure as e:
        record.delivery_status = DeliveryStatusChoices.FAILED
        record.error = str(e)
        store.save_telegram_message(record, ["delivery_status", "error", "attempted_at"])

        logger.warning(f"Notification {record_id} to {record.recipient} failed: {e}")
        capture_crawler_error(
            e,
            section="tasks.deliver_notification",
            extra={"record_id": record_id, "product_id": str(record.product_id)},
        )
        return record.delivery_status

    record.delivery_status = DeliveryStatusChoices.SENT
    record.sent_at = timezone.now()
    store.save_telegram_message(record, ["delivery_status", "sent_at", "attempted_at"])

    logger.info(f"Notification {record_id} delivered to {record.recipient}")
    return record.delivery_status
