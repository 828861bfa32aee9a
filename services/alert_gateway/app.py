"""Alert gateway entrypoint."""

import logging

import uvicorn
from fastapi import FastAPI

from services.alert_gateway.dependencies import get_context
from services.alert_gateway.presentation.http.routes import router

logging.basicConfig(
    level=get_context().settings.log_level,
    format="[%(levelname)s] %(asctime)s - %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(title="CrisisNet Alert Gateway")
app.include_router(router)


def main() -> None:
    uvicorn.run(app, host="0.0.0.0", port=8000)
