import logging

logger = logging.getLogger(__name__)


class UndoStack:
    """Compensating actions, run newest first when a multi-step write fails."""

    def __init__(self):
        self._steps = []

    def push(self, description, action, *args):
        self._steps.append((description, action, args))

    def __len__(self):
        return len(self._steps)

    def unwind(self):
        while self._steps:
            description, action, args = self._steps.pop()
            try:
                action(*args)
                logger.info("Compensated: %s", description)
            except Exception:
                # keep unwinding; the original error is what the caller sees
                logger.exception("Compensation failed: %s", description)
