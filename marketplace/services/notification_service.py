# marketplace/services/notification_service.py
from marketplace.celery_worker import celery_app
from marketplace.services.email_client import EmailClient
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Powiadomienia o ofertach (quote) do kupujacego / dostawcy.
    Celery robi wysylke asynchronicznie, tu tylko kolejkujemy.
    """

    @staticmethod
    def quote_submitted(buyer: dict, rfq: dict, quote: dict):
        send_quote_submitted_task.delay(buyer, rfq, quote)

    @staticmethod
    def quote_accepted(supplier: dict, rfq: dict, quote: dict):
        send_quote_accepted_task.delay(supplier, rfq, quote)

    @staticmethod
    def quote_rejected(supplier: dict, rfq: dict, quote: dict, reason: str | None = None):
        send_quote_rejected_task.delay(supplier, rfq, quote, reason)


def _send(to: str | None, subject: str, html: str) -> dict:
    if not to:
        logger.warning(f"[NOTIFICATION] no recipient for {subject!r}, skipped")
        return {"status": "skipped"}

    sent = EmailClient().send(to, subject, html)
    return {"to": to, "status": "sent" if sent else "logged"}


@celery_app.task(name="marketplace.services.notification_service.send_quote_submitted_task")
def send_quote_submitted_task(buyer: dict, rfq: dict, quote: dict):
    logger.info(f"[NOTIFICATION] Buyer {buyer.get('id')}: new quote {quote['quote_number']} on {rfq['rfq_number']}")

    html = (
        f"<p>Hi {buyer.get('name') or 'there'},</p>"
        f"<p>You received a new quote <b>{quote['quote_number']}</b> for your RFQ "
        f"<b>{rfq['title']}</b> ({rfq['rfq_number']}).</p>"
        f"<p>Price: ₹{quote['quote_price']}, delivery in {quote['delivery_days']} days.</p>"
    )
    return _send(buyer.get("email"), f"New quote received for {rfq['rfq_number']}", html)


@celery_app.task(name="marketplace.services.notification_service.send_quote_accepted_task")
def send_quote_accepted_task(supplier: dict, rfq: dict, quote: dict):
    logger.info(f"[NOTIFICATION] Supplier {supplier.get('id')}: quote {quote['quote_number']} accepted")

    html = (
        f"<p>Hi {supplier.get('name') or 'there'},</p>"
        f"<p>Your quote <b>{quote['quote_number']}</b> for <b>{rfq['title']}</b> was accepted.</p>"
    )
    return _send(supplier.get("email"), f"Your quote {quote['quote_number']} was accepted", html)


@celery_app.task(name="marketplace.services.notification_service.send_quote_rejected_task")
def send_quote_rejected_task(supplier: dict, rfq: dict, quote: dict, reason: str | None = None):
    logger.info(f"[NOTIFICATION] Supplier {supplier.get('id')}: quote {quote['quote_number']} rejected")

    html = (
        f"<p>Hi {supplier.get('name') or 'there'},</p>"
        f"<p>Your quote <b>{quote['quote_number']}</b> for <b>{rfq['title']}</b> was not accepted.</p>"
    )
    if reason:
        html += f"<p>Reason: {reason}</p>"
    return _send(supplier.get("email"), f"Update on your quote {quote['quote_number']}", html)
