import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .settings import settings
from .routers import chat, generate

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Speaking Avatar Tutor API")

# CORS origin for the browser frontend (CORS_ORIGIN, comma separated)
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origins,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.include_router(chat.router)
app.include_router(generate.router)

@app.get("/")
def root():
	return {
		"ok": True,
		"message": "Speaking avatar tutor backend is running",
		"providers": settings.providers,
	}

@app.on_event("startup")
async def startup_event():
	logger.info(
		"Providers: gemini=%s openai=%s tts=%s (CORS=%s)",
		bool(settings.gemini_api_key),
		bool(settings.openai_api_key),
		bool(settings.tts_provider),
		settings.cors_origin,
	)
