# meetlingo/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meetlingo.config import settings
from meetlingo.core.db import init_db, close_db
from meetlingo.core.bootstrap import check_configuration, ensure_default_admin
from meetlingo.services.translation import close_translation_client

from meetlingo.api.v1.routers import auth, messages, rooms, translate
from meetlingo.api.v1.routers.ws_captions import router as ws_captions_router
from meetlingo.api.v1.routers.ws_speech import router as ws_speech_router

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def on_startup():
    # Missing credentials are fatal: refuse to start rather than fail mid-call
    check_configuration(settings)
    logger.info("[startup] translation endpoint=%s fallbacks=%d",
                settings.translation_endpoint, len(settings.translation_fallback_endpoints))
    await init_db()
    await ensure_default_admin(settings)

@app.on_event("shutdown")
async def on_shutdown():
    await close_translation_client()
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(rooms.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")
app.include_router(translate.router, prefix="/api/v1")

# WebSocket
app.include_router(ws_captions_router)
app.include_router(ws_speech_router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
