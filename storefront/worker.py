import logging

from celery import Celery
from kombu.exceptions import OperationalError

from . import emails
from .config import settings

logger = logging.getLogger(__name__)

# Celery App Config
celery = Celery(__name__, broker=settings.CELERY_BROKER_URL, backend=settings.CELERY_BROKER_URL)
celery.conf.update(
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_serializer="json",
    accept_content=["json"],
)


@celery.task(name="send_order_confirmation_email")
def send_order_confirmation_email(data: dict):
    logger.info("Sending order confirmation to %s for order %s", data["customer_email"], data["order_number"])
    success, error = emails.send_order_confirmation(data)
    if not success:
        logger.error("Order confirmation for %s not sent: %s", data["order_number"], error)
    return success


@celery.task(name="send_order_status_email")
def send_order_status_email(email: str, order_number: str, status: str, tracking_number=None, order_id=None):
    success, error = emails.send_status_update(email, order_number, status, tracking_number, order_id)
    if not success:
        logger.error("Status update for %s not sent: %s", order_number, error)
    return success


@celery.task(name="send_contact_email")
def send_contact_email(name: str, email: str, subject: str, message: str, category=None):
    success, error = emails.send_contact(name, email, subject, message, category)
    if not success:
        logger.error("Contact message from %s not sent: %s", email, error)
    return success


def enqueue(task, *args, **kwargs) -> bool:
    """Queue a task; a broker outage is logged and never fails the request."""
    try:
        task.delay(*args, **kwargs)
        return True
    except OperationalError as e:
        logger.error("Could not queue %s: %s", task.name, e)
        return False
