import atexit
import logging

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def init_scheduler(app):
    """
    Start the background scheduler used for after-commit work.

    Returns None under TESTING; callers then run their jobs inline.
    """
    if app.config.get("TESTING"):
        return None

    if not scheduler.running:
        scheduler.start()
        logger.info("[SCHEDULER] Scheduler started")
        # Shut down the scheduler when exiting the app
        atexit.register(lambda: scheduler.shutdown(wait=False))
    else:
        logger.info("[SCHEDULER] Scheduler already running (skipping duplicate start)")
    return scheduler
