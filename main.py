"""
MyTaxi Orders Backend
=====================
Entry point.  ``python main.py`` serves on the configured host / port;
for development use ``uvicorn main:app --reload``.
"""

import uvicorn

from mytaxi.api.app import create_app
from mytaxi.config import settings

app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
