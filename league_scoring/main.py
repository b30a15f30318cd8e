import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from league_scoring.core.config import get_settings
from league_scoring.core.database import engine, Base
from league_scoring.core.exceptions import ScoringError
from league_scoring.api import questions, scoring, episodes, standings, rosters

# Import all models so Base.metadata is populated for create_all
import league_scoring.models.models  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up, creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready.")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Fantasy league scoring engine: weekly questions, retention bonuses and a per-episode points ledger.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScoringError)
async def scoring_error_handler(request: Request, exc: ScoringError):
    if exc.status_code >= 500:
        logger.error("Unhandled scoring error on %s: %s", request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# API routers
app.include_router(questions.router)
app.include_router(scoring.router)
app.include_router(episodes.router)
app.include_router(standings.router)
app.include_router(rosters.router)


@app.get("/health")
async def health():
    return {"status": "healthy"}
