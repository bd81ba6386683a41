"""
Logging configuration

- Log rotation (keep 7 files, max 50MB per file)
- Reduced SQL noise
"""
import logging
from logging.handlers import RotatingFileHandler
import os

from .config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_dir: str = None, level: str = None) -> logging.Logger:
    """Configure the root logger once; safe to call again"""
    log_dir = log_dir or settings.LOGS_PATH
    level = (level or settings.LOG_LEVEL).upper()

    root = logging.getLogger()
    if getattr(root, "_prodtrack_configured", False):
        return root

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "prodtrack.log"),
            maxBytes=50*1024*1024,  # 50MB
            backupCount=7,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    except OSError as e:
        root.warning(f"File logging disabled ({log_dir}): {e}")

    root.setLevel(level)

    # Reduce noise from SQLAlchemy
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)

    root._prodtrack_configured = True
    return root
