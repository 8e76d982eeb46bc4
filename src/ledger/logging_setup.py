import logging
import logging.handlers
from pathlib import Path

LOG_FILE_NAME = "stock_ledger.log"


def setup_logging(settings) -> Path:
    """Configure rotating file logging under INVENTORY_DATA_ROOT/logs/stock_ledger.log"""
    root = Path(settings.INVENTORY_DATA_ROOT).expanduser()
    log_dir = root / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    level = logging.getLevelName(str(settings.LOG_LEVEL).upper())
    if not isinstance(level, int):
        level = logging.INFO

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler = logging.handlers.RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(fmt)
    handler.setLevel(level)

    logger = logging.getLogger()  # root
    logger.setLevel(level)
    # avoid duplicate handlers on Streamlit reruns
    if not any(
        isinstance(h, logging.handlers.RotatingFileHandler) and getattr(h, "baseFilename", "").endswith(LOG_FILE_NAME)
        for h in logger.handlers
    ):
        logger.addHandler(handler)
    else:
        handler.close()

    return log_path
