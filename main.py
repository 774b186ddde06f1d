import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination
import uvicorn
from core.async_engine import AsyncSessionLocal
from core.settings import settings
from crud.user_crud import user_crud as UserCrud
from api.api import api_router

logging.basicConfig(level=logging.DEBUG if settings.LOG_LEVEL == "trace" else settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with AsyncSessionLocal() as session:
        await UserCrud.ensure_first_admin(session)
    yield


app = FastAPI(title=settings.PROJECT_NAME, version="1.0.0", lifespan=lifespan)

if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"Adding CORS middleware with origins: {settings.BACKEND_CORS_ORIGINS}")
    cors_origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS]
else:
    logger.info("No CORS origins configured, using wildcard")
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"],  # credentials are not allowed with wildcard
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=32400,
    expose_headers=["Content-Disposition"],
)

app.include_router(api_router)

add_pagination(app)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME, "version": "1.0.0"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "cors_origins": settings.BACKEND_CORS_ORIGINS,
        "app_base_url": settings.APP_BASE_URL,
    }


if __name__ == "__main__":
    run_args = {
        "app": "main:app",
        "host": settings.SERVER_ADDRESS,
        "port": settings.SERVER_PORT,
        "log_level": settings.LOG_LEVEL,
        "reload": settings.WATCH_FILES,
    }

    uvicorn.run(**run_args)
