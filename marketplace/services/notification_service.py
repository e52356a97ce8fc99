# marketplace/services/notification_service.py
from marketplace.celery_worker import celery_app
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Powiadomienia o zmianie statusu zamowienia (toast/email po stronie UI).
    Best-effort: blad kolejki nie wplywa na wynik przejscia.
    """

    @staticmethod
    def send_status_change(customer_id: int, order_id: int, status: str) -> bool:
        try:
            send_status_change_task.delay(customer_id, order_id, status)
            return True
        except Exception as e:
            logger.warning(f"Nie udalo sie wyslac powiadomienia dla zamowienia {order_id}: {e}")
            return False


@celery_app.task(name="marketplace.services.notification_service.send_status_change_task")
def send_status_change_task(customer_id: int, order_id: int, status: str):
    """
    Celery task - w prawdziwym systemie email/push.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {customer_id}: Order {order_id} is now {status}")

    return {"customer_id": customer_id, "order_id": order_id, "status": status}
