"""Root logger setup shared by the Flask app and the scripts."""

import logging
import sys
import threading

_logging_initialized = False
_init_lock = threading.Lock()


def setup_logging(level=logging.INFO):
    """Configure the root logger once per process (stdout handler)."""
    global _logging_initialized

    with _init_lock:
        if _logging_initialized:
            return

        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(handler)
        root.setLevel(level)

        _logging_initialized = True
        root.info("Logging configuration initialized")
