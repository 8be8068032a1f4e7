from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s"


def setup_logging(level: str | int = "INFO") -> None:
    """Configure the root logger once. Later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(handler)

    if isinstance(level, str):
        level = level.upper()
    root.setLevel(level)

    # paho is chatty at DEBUG; keep it at our level or quieter.
    logging.getLogger("paho").setLevel(max(root.level, logging.INFO))
