"""
Entry point: serve the Order API with uvicorn.

    python -m order_api.main
"""

import uvicorn

from order_api.routes import create_app
from order_api.utils.config import settings

app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())
