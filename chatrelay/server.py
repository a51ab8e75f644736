import sys
if sys.platform == "win32":
    import asyncio
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

import logging

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import ServerConfig
from .generators.factory import build_generator
from .ws_handler import websocket_chat as _websocket_chat

logger = logging.getLogger(__name__)

app = FastAPI(title="chatrelay")

# Configuration is read once here and handed to every session explicitly.
app.state.config = ServerConfig.from_env()
app.state.generator = None

# --- CORS Configuration ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(app.state.config.cors_origins),
    allow_credentials="*" not in app.state.config.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info("Initializing upstream generator (mode=%s)...", app.state.config.upstream)
    app.state.generator = await build_generator(app.state.config)


# --- API Routes ---

@app.get("/api/health")
async def api_health():
    generator = app.state.generator
    return {"status": "ok", "upstream": generator.name if generator is not None else None}


# --- WebSocket chat ---

@app.websocket("/ws/chat")
async def websocket_chat(websocket: WebSocket):
    await _websocket_chat(
        websocket,
        generator=app.state.generator,
        config=app.state.config,
    )
