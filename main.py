"""
flowrunner API entry point
"""
import os
import logging
import uvicorn
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from flowrunner.api import create_app
from flowrunner.config import EngineSettings
from flowrunner.core import ExecutionEngine


if __name__ == "__main__":
    settings = EngineSettings.from_env()
    app = create_app(ExecutionEngine(settings))

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )
