import logging
import os
from typing import Any, Dict, Optional

LOGGER_NAME = "atomsim"


def setup_logging(log_config: Dict[str, Any], run_id: Optional[str] = None) -> logging.Logger:
    """
    Configure the dedicated "atomsim" logger (not the root logger).

    Output always goes to the console; when ``log_config['log_dir']`` is set a
    file handler is added at ``<log_dir>/<run_id>/simulation.log`` (or
    ``<log_dir>/simulation.log`` without a run id). Existing handlers are
    cleared first so repeated calls do not duplicate output.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_config.get("level", "INFO"))
    logger.propagate = False

    formatter = logging.Formatter(log_config.get("format", "%(levelname)s %(name)s: %(message)s"))

    if logger.hasHandlers():
        logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_file = None
    log_dir = log_config.get("log_dir")
    if log_dir:
        if run_id:
            log_dir = os.path.join(log_dir, run_id)
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, "simulation.log")
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized. Run ID: %s. Log file: %s", run_id, log_file)
    return logger
