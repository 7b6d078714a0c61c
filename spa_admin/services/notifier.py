import logging

from spa_admin.errors import NotificationError

logger = logging.getLogger(__name__)


class BookingNotifier:
    """
    Fire-and-forget delivery of booking confirmations.

    With a running scheduler the email is sent from a one-off background job;
    otherwise it is sent inline. Either way a failure is logged and dropped.
    """

    def __init__(self, email_service, scheduler=None, enabled=True):
        self.email_service = email_service
        self.scheduler = scheduler
        self.enabled = enabled

    def dispatch(self, payload):
        if not self.enabled:
            return
        booking_id = payload["booking"]["id"]
        if self.scheduler is not None and self.scheduler.running:
            try:
                self.scheduler.add_job(
                    self.deliver, args=[payload], id=f"booking-email-{booking_id}",
                    replace_existing=True,
                )
            except Exception:
                logger.exception("Could not queue email for booking %s", booking_id)
            return
        self.deliver(payload)

    def deliver(self, payload):
        booking_id = payload["booking"]["id"]
        try:
            result = self.email_service.send_booking_confirmation(payload)
        except NotificationError as e:
            logger.warning("NotificationError for booking %s: %s", booking_id, e.message)
            return None
        except Exception as e:
            logger.exception("NotificationError for booking %s: %s", booking_id, e)
            return None
        logger.info("Booking %s confirmation sent: %s", booking_id, result)
        return result
