"""Low-level JSON file I/O operations with locking."""
import json
import logging
import os
import shutil
import sys
import tempfile
import time
from contextlib import contextmanager
from typing import Any, Dict

if sys.platform == "win32":
    import msvcrt  # noqa: F401
else:
    import fcntl

logger = logging.getLogger(__name__)


def ensure_json_file(file_path: str, initial: Dict[str, Any]) -> bool:
    """
    Create file_path with initial content if it doesn't exist yet.

    Returns:
        True if the file was created, False if it already existed
    """
    if os.path.exists(file_path):
        return False

    dir_path = os.path.dirname(file_path)
    if dir_path:
        os.makedirs(dir_path, exist_ok=True)

    try:
        # O_EXCL so two processes racing here don't clobber each other
        fd = os.open(file_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return False

    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(initial, f, ensure_ascii=False, indent=2)
    logger.info(f"Created data file {file_path}")
    return True


def load_json(file_path: str, retry_count: int = 3, retry_delay: float = 0.1) -> Dict[str, Any]:
    """
    Load and parse JSON file with UTF-8 encoding.

    Args:
        file_path: Path to JSON file
        retry_count: Number of retry attempts for permission errors (default: 3)
        retry_delay: Delay in seconds between retries (default: 0.1)

    Returns:
        dict: Parsed JSON content

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If JSON is malformed
        PermissionError: If file not readable after retries
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    for attempt in range(retry_count):
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except PermissionError:
            if attempt < retry_count - 1:
                time.sleep(retry_delay)
                continue
        except json.JSONDecodeError as e:
            raise json.JSONDecodeError(
                f"Malformed JSON in {file_path}: {e.msg}",
                e.doc,
                e.pos
            )

    raise PermissionError(f"Cannot read file after {retry_count} attempts: {file_path}")


def save_json(file_path: str, data: Dict[str, Any], backup: bool = False) -> None:
    """
    Save data to JSON file atomically with UTF-8 encoding.

    The data is written to a temp file in the same directory, fsynced, and
    renamed over the target, so readers see either the old or the new file.

    Args:
        file_path: Path to JSON file
        data: Dictionary to save
        backup: If True, copy the previous file to <file_path>.backup first

    Raises:
        IOError: If write operation fails
    """
    dir_path = os.path.dirname(file_path)
    if dir_path and not os.path.exists(dir_path):
        os.makedirs(dir_path, exist_ok=True)

    if backup and os.path.exists(file_path):
        try:
            shutil.copy2(file_path, f"{file_path}.backup")
        except (IOError, PermissionError) as e:
            raise IOError(f"Failed to create backup: {e}")

    temp_fd, temp_path = tempfile.mkstemp(
        dir=dir_path if dir_path else ".",
        prefix=".tmp_",
        suffix=".json"
    )

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, file_path)
    except Exception as e:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                logger.warning(f"Could not remove temp file {temp_path}")
        raise IOError(f"Failed to write file {file_path}: {e}")


@contextmanager
def lock_file(file_path: str, timeout: float = 5.0):
    """
    Context manager for an exclusive lock on file_path.

    The lock is taken on a sidecar "<file_path>.lock" file, so the data file
    itself can be atomically replaced by save_json while the lock is held.

    Usage:
        with lock_file('data/datastore.json'):
            data = load_json('data/datastore.json')
            ...
            save_json('data/datastore.json', data)

    Raises:
        TimeoutError: If unable to acquire lock within timeout
    """
    lock_path = f"{file_path}.lock"
    dir_path = os.path.dirname(lock_path)
    if dir_path:
        os.makedirs(dir_path, exist_ok=True)

    start_time = time.time()

    if sys.platform == "win32":
        while True:
            try:
                lock_fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
                break
            except FileExistsError:
                if time.time() - start_time > timeout:
                    raise TimeoutError(f"Could not acquire lock on {file_path} within {timeout}s")
                time.sleep(0.05)
        try:
            yield
        finally:
            os.close(lock_fd)
            try:
                os.remove(lock_path)
            except OSError:
                logger.warning(f"Could not remove lock file {lock_path}")
    else:
        lock_handle = open(lock_path, "a+")
        try:
            while True:
                try:
                    fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except (IOError, OSError):
                    if time.time() - start_time > timeout:
                        raise TimeoutError(f"Could not acquire lock on {file_path} within {timeout}s")
                    time.sleep(0.05)

            try:
                yield
            finally:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)
        finally:
            lock_handle.close()
