# catalog_gate/observability.py
from __future__ import annotations

"""Decision sinks and loguru setup.

Gates never import a logger directly for their decisions; they receive a
``DecisionSink`` and call it with an event name and a payload dict. The
default sink forwards to loguru, tests pass a list-collecting callable.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from loguru import logger

DecisionSink = Callable[[str, Dict[str, Any]], None]


def loguru_sink(event: str, payload: Dict[str, Any]) -> None:
    logger.bind(event=event).info("[{}] {}", event, payload)


def null_sink(event: str, payload: Dict[str, Any]) -> None:
    return None


def resolve_sink(sink: Optional[DecisionSink]) -> DecisionSink:
    return loguru_sink if sink is None else sink


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """
    Reset loguru handlers: stderr at ``level`` plus, when ``log_dir`` is
    given, a rotating ``gate.log`` inside it.
    """
    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(log_dir / "gate.log", level=level, rotation="10 MB", retention=5)
    logger.info("Logging configured (level={}, dir={})", level, log_dir)
