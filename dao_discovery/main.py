import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dao_discovery.routers.explore import close_registry_api, router as explore_router
from dao_discovery.utils.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("DAO Discovery starting up...")
    yield
    await close_registry_api()
    logger.info("Registry API client closed")


app = FastAPI(title="DAO Discovery", version="0.1.0", lifespan=lifespan)

# Optional: comma-separated list of browser origins allowed to call the API
cors_origins_env = os.getenv("ALLOWED_ORIGINS")
if cors_origins_env:
    allowed_origins = [origin.strip() for origin in cors_origins_env.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
    logger.info(f"Allowed origins: {allowed_origins}")

app.include_router(explore_router, prefix="/explore", tags=["explore"])


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}
