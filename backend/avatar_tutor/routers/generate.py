from __future__ import annotations
import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..llm_client import LLMClient, ProviderRequestError, ProviderResponseError, get_llm_client
from ..response_normalizer import candidate_text, dig
from .options import read_generation_options

logger = logging.getLogger(__name__)

# Mirrors the single-provider serverless function the static frontend can call directly
router = APIRouter(prefix="/api", tags=["generate"])


class GenerateRequest(BaseModel):
	prompt: Any = None
	temperature: Any = None
	max_tokens: Any = None
	top_p: Any = None


@router.post("/generate")
async def generate(req: GenerateRequest, client: LLMClient = Depends(get_llm_client)):
	if not isinstance(req.prompt, str) or not req.prompt:
		return JSONResponse(status_code=400, content={"error": "Missing or invalid 'prompt' in request body"})
	options, invalid = read_generation_options(req.temperature, req.max_tokens, req.top_p)
	if invalid:
		return JSONResponse(status_code=400, content={"error": f"Missing or invalid '{invalid}' in request body"})
	if not client.settings.gemini_api_key:
		return JSONResponse(status_code=500, content={"error": "Missing GEMINI_API_KEY in environment variables"})

	try:
		reply = await client.call_gemini(req.prompt, **options)
	except ProviderResponseError as e:
		return JSONResponse(
			status_code=e.status_code,
			content={
				"error": "Gemini API error",
				"details": dig(e.body, "error", "message") or "Unknown error",
				"status": e.status_code,
			},
		)
	except ProviderRequestError as e:
		return JSONResponse(status_code=500, content={"error": "Server error", "message": e.details})

	raw = reply.envelope
	text = candidate_text(raw)
	if not text:
		logger.error("No text found in Gemini response")
		candidates = dig(raw, "candidates")
		return JSONResponse(
			status_code=500,
			content={
				"error": "No text content in model response",
				"responseKeys": list(raw.keys()) if isinstance(raw, dict) else [],
				"hasCandidates": bool(candidates),
				"candidatesLength": len(candidates) if isinstance(candidates, list) else 0,
			},
		)
	logger.info("Gemini reply length=%d", len(text))
	return {"reply": text}
