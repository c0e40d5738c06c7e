import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from cseg.api.routes import game
from cseg.api.websocket.handlers import websocket_endpoint
from cseg.api.websocket.manager import manager
from cseg.config import settings
from cseg.core.metrics import MetricsMiddleware, get_metrics
from cseg.game_engine.rounds import round_engine
from cseg.game_engine.snippets import load_snippets_file

logging.basicConfig(
    level=settings.log_level,
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if settings.snippets_path:
        round_engine.snippets = load_snippets_file(settings.snippets_path)
        logger.info(f"Loaded {len(round_engine.snippets)} snippets from {settings.snippets_path}")
    elif not round_engine.snippets:
        round_engine.use_builtin_snippets()
    round_engine.add_listener(manager.broadcast_state)
    yield
    round_engine.remove_listener(manager.broadcast_state)


app = FastAPI(
    title="CSEG Game Server",
    description="Introduce bugs, fix each other's bugs, score by test results",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
if settings.metrics_enabled:
    app.add_middleware(MetricsMiddleware)

# REST API routes
app.include_router(game.router, prefix="/api", tags=["game"])

# WebSocket endpoint
app.add_api_websocket_route("/ws", websocket_endpoint)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics() -> Response:
    body, content_type = await get_metrics()
    return Response(content=body, media_type=content_type)


@app.get("/")
async def root() -> dict[str, Any]:
    return {
        "name": "CSEG Game Server",
        "version": "0.1.0",
        "docs": "/docs",
        "rounds": {
            "red": "Introduce subtle bugs into your snippet",
            "blue": "Fix another player's bugged snippet",
        },
        "endpoints": {
            "rest": "/api",
            "websocket": "/ws",
        },
    }
