"""
Courier server - main application entry point.

Run with ``courier-server`` (or ``python -m courier.main``); uvicorn serves
the app on SERVER_HOST:SERVER_PORT.
"""

import uvicorn

from .app.factory import create_app
from .config import get_config
from .structured_logging.logging_config import get_logger, setup_logging

# Logging is set up before the app is created so startup is captured
config = get_config()
setup_logging(config.logging.to_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

app = create_app(config)


def main() -> None:
    """Start the uvicorn server."""
    logger.info("Starting uvicorn", host=config.server.host, port=config.server.port)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_config=None)


if __name__ == "__main__":
    main()
