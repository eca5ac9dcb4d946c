import logging
import sys

import uvicorn

from smartbills.core.config import settings
from smartbills.notifications.service import create_app

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = create_app()


def run() -> None:
    uvicorn.run("smartbills.main:app", host=settings.SERVER_HOST, port=settings.SERVER_PORT)


if __name__ == "__main__":
    run()
