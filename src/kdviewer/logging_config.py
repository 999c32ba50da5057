"""
Logging Configuration
Sets up the 'kdviewer' logger and tames the rendering libraries' loggers.
"""
import logging
import sys
from typing import Optional, Sequence

# Third-party loggers that flood the console once the app runs at DEBUG
NOISY_LOGGERS: Sequence[str] = ("pyvista", "vtkmodules", "matplotlib", "PIL")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'


def quiet_libraries(level: int = logging.WARNING, names: Sequence[str] = NOISY_LOGGERS) -> None:
    """Raises the threshold of the rendering stack's loggers to `level`."""
    for name in names:
        logging.getLogger(name).setLevel(level)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the 'kdviewer' namespace: a stdout handler plus an optional file.

    Index build, rebuild and query events are logged from the model and
    controller modules through child loggers of this one. Library loggers
    stay at WARNING even under --debug so only the index's own trace shows.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("kdviewer")
    logger.setLevel(level)
    # Handled here; not again by whatever the root logger has attached
    logger.propagate = False

    # setup_logging may run more than once (tests, re-entered main)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    quiet_libraries()

    logger.info(f"Logging initialized at {logging.getLevelName(level)}.")
    return logger
