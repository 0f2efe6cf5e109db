"""Named background tasks delivered after the enqueuing transaction commits."""
import logging
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple

from conference_central.services.datastore import Transaction

logger = logging.getLogger(__name__)

SEND_CONFIRMATION_EMAIL = "send_confirmation_email"

TaskHandler = Callable[[Dict[str, str]], None]


def send_confirmation_email(params: Dict[str, str]) -> None:
    """
    Default handler for conference confirmation e-mails.

    Mail delivery is an external concern; this records what would be sent.
    """
    logger.info(
        f"Sending conference confirmation to {params.get('email')}: "
        f"{params.get('conference_info')}"
    )


class TaskQueue:
    """
    Dispatches tasks to in-process handlers.

    A task enqueued with a transaction is held until that transaction commits
    and dropped if it never does.
    """

    def __init__(self):
        self._handlers: Dict[str, TaskHandler] = {}
        self._lock = Lock()
        self.delivered: List[Tuple[str, Dict[str, str]]] = []

    def register(self, task_name: str, handler: TaskHandler) -> None:
        with self._lock:
            self._handlers[task_name] = handler

    def enqueue(self, task_name: str, params: Dict[str, str],
                transaction: Optional[Transaction] = None) -> None:
        """
        Queue task_name with string parameters.

        Raises:
            ValueError: If no handler is registered or a parameter isn't a string
        """
        with self._lock:
            handler = self._handlers.get(task_name)
        if handler is None:
            raise ValueError(f"No handler registered for task: {task_name}")

        for name, value in params.items():
            if not isinstance(value, str):
                raise ValueError(f"Task parameter {name} must be a string")

        params = dict(params)
        if transaction is None:
            self._deliver(task_name, handler, params)
        else:
            transaction.on_commit(lambda: self._deliver(task_name, handler, params))

    def _deliver(self, task_name: str, handler: TaskHandler, params: Dict[str, str]) -> None:
        logger.info(f"Running task {task_name}")
        handler(params)
        with self._lock:
            self.delivered.append((task_name, params))


_queue: Optional[TaskQueue] = None


def get_queue() -> TaskQueue:
    """Return the default queue with the built-in handlers registered."""
    global _queue

    if _queue is None:
        _queue = TaskQueue()
        _queue.register(SEND_CONFIRMATION_EMAIL, send_confirmation_email)
    return _queue


def _clear_queue():
    global _queue
    _queue = None
