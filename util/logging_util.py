import logging
import sys
from typing import List

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, level=logging.INFO) -> logging.Logger:
    """
    Sets up a logger with consistent formatting.

    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger

def log_recommendations(logger: logging.Logger, user_id: str, content_ids: List[str],
                        candidates: int, duration_ms: float = None):
    """
    Logs the outcome of a recommendation run.

    Args:
        logger: Logger instance to use
        user_id: User the recommendations were computed for
        content_ids: Ids of the returned content, best first
        candidates: Number of items that survived filtering
        duration_ms: Optional duration of the call in milliseconds
    """
    duration_str = f" ({duration_ms:.2f}ms)" if duration_ms else ""
    logger.info(f"Recommendations{duration_str} - User: {user_id}, {len(content_ids)} of {candidates} candidates")
    logger.debug(f"  Content: {content_ids}")

def log_newsletter_personalized(logger: logging.Logger, user_id: str,
                                applied: List[str], send_time: str):
    """
    Logs a personalized newsletter.

    Args:
        logger: Logger instance to use
        user_id: User the newsletter was personalized for
        applied: Names of the personalizations applied, in order
        send_time: Optimal send time chosen for the user
    """
    logger.info(f"📰 Newsletter Personalized - User: {user_id}, send at {send_time}")
    logger.info(f"  Applied: {', '.join(applied)}")
