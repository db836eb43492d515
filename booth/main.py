from fastapi import FastAPI
import logging

from booth.api.routes import router
from booth.runtime import init_runtime_for_app

app = FastAPI(title="looney-booth", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    rt = init_runtime_for_app()
    logger.info("Booth network ready with %d destinations", rt.registry.count)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "looney-booth", "version": "0.1.0"}
