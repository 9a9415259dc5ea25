"""
Main entry point for the CRTP link server.
"""

import logging
import sys
from pathlib import Path

import uvicorn

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from src.crtp_link.core.config import get_config  # noqa: E402
from src.crtp_link.utils.logging import setup_logging  # noqa: E402


def main() -> None:
    """Run the CRTP link API server."""
    config = get_config()

    setup_logging(
        log_level=config.logging.LOG_LEVEL,
        log_format=config.logging.LOG_FORMAT,
        log_file_path=config.logging.LOG_FILE_PATH,
        log_file_max_bytes=config.logging.LOG_FILE_MAX_BYTES,
        log_file_backup_count=config.logging.LOG_FILE_BACKUP_COUNT,
        enable_console=config.logging.LOG_ENABLE_CONSOLE,
        enable_file=config.logging.LOG_ENABLE_FILE,
        frame_trace=config.logging.LOG_FRAME_TRACE,
    )
    logger = logging.getLogger(__name__)

    logger.info(
        f"Starting {config.app.APP_NAME} server on {config.app.APP_HOST}:{config.app.APP_PORT}"
    )

    uvicorn.run(
        "src.crtp_link.core.app:app",
        host=config.app.APP_HOST,
        port=config.app.APP_PORT,
        reload=config.development.DEV_HOT_RELOAD,
        log_level=config.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
