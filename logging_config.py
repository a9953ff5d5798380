import logging
import os
import sys

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "openai",
    "uvicorn.access",
)


def setup_logging(level=None):
    """Configure console logging for the server and quiet chatty client libraries"""

    level = level or os.getenv("LUXEBOT_LOG_LEVEL", "INFO")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        )
    )

    # Replace handlers so repeated calls don't duplicate output
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Stage timings are useful when debugging, noisy otherwise
    logging.getLogger("luxebot.logging.flight_recorder").setLevel(logging.WARNING)
    logging.getLogger("luxebot").setLevel(level)

    return root_logger


if __name__ == "__main__":
    setup_logging()
