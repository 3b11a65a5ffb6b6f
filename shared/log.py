"""
Component logger factory.

Every lexsync module logs through the stdlib ``logging`` tree under the
``lexsync`` namespace. This module hands out the five level functions bound to
a component logger so call sites stay short:

Usage:
    from shared.log import create_logger
    log_trace, log_debug, log_info, log_warn, log_error = create_logger("Engine")
    log_info("Sync pass started")  # -> logger "lexsync.engine", level INFO
"""

import logging

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER_NAME = "lexsync"


def create_logger(component: str = ""):
    """Create log functions for a component.

    Args:
        component: Component name. If provided, the logger is
                   "lexsync.{component lowercased}", otherwise "lexsync".

    Returns:
        Tuple of (log_trace, log_debug, log_info, log_warn, log_error) functions.
    """
    name = f"{ROOT_LOGGER_NAME}.{component.lower()}" if component else ROOT_LOGGER_NAME
    logger = logging.getLogger(name)

    def log_trace(msg): logger.log(TRACE, msg)
    def log_debug(msg): logger.debug(msg)
    def log_info(msg): logger.info(msg)
    def log_warn(msg): logger.warning(msg)
    def log_error(msg): logger.error(msg)

    return log_trace, log_debug, log_info, log_warn, log_error
