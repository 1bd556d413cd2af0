import os
import logging
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

def setup_logging(level=None):
    """One stdout handler on the root logger, shared by the API and the CLI."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ))

    root = logging.getLogger()
    root.setLevel(level if level is not None else getattr(logging, LOG_LEVEL, logging.INFO))
    root.addHandler(handler)

    # pool reconnect chatter and token-library noise stay out of the app log
    for name in ("psycopg", "psycopg.pool", "jwt"):
        logging.getLogger(name).setLevel(logging.WARNING)
