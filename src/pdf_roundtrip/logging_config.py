import logging
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configures logging for the API service.
    """
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Keep per-request access lines out of the way unless debugging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
