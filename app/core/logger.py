# core/logger.py
import logging

from app.core.config import settings

logger = logging.getLogger("convive")
logger.setLevel(settings.LOG_LEVEL or logging.INFO)

# Console Handler, added once even if the module is reloaded
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] [%(module)s] %(message)s"))
    logger.addHandler(console_handler)
