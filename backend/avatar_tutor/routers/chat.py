from __future__ import annotations
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..llm_client import (
	LLMClient,
	ProviderNotConfiguredError,
	ProviderRequestError,
	ProviderResponseError,
	get_llm_client,
)
from ..prompt_composer import compose
from ..response_normalizer import Matched
from ..settings import settings
from ..tiers import TIER_PROFILES
from .options import read_generation_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class ChatRequest(BaseModel):
	# Left untyped so bad values are answered with our own 400
	prompt: Any = None
	text: Any = None
	temperature: Any = None
	max_tokens: Any = None
	top_p: Any = None


class AskRequest(BaseModel):
	text: Any = None
	tier: Any = None
	subject: Any = None


class TtsRequest(BaseModel):
	text: Any = None


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
	return JSONResponse(status_code=status_code, content={"ok": False, "error": message, **extra})


async def _relay(client: LLMClient, prompt: str, **options: Any) -> Dict[str, Any] | JSONResponse:
	"""Call the provider and turn its body into {"ok": True, "reply": ...} or an error response."""
	try:
		reply = await client.complete(prompt, **options)
	except ProviderNotConfiguredError as e:
		return _error(500, str(e))
	except ProviderResponseError as e:
		return _error(502, f"{e.label} API error", status=e.status_code, body=e.body)
	except ProviderRequestError as e:
		return _error(500, f"Server error calling {e.label}", details=e.details)

	result = reply.extract()
	if result is None:
		logger.error("%s returned an empty or non-JSON body", reply.provider)
		return _error(502, "Empty response from provider")
	if isinstance(result, Matched):
		return {"ok": True, "reply": result.text}
	logger.warning("Unrecognized %s response shape", reply.provider)
	if client.settings.allow_raw_reply:
		return {"ok": True, "reply": result.serialized()}
	return _error(502, "Unrecognized provider response", body=result.envelope)


@router.post("/chat")
async def chat(req: ChatRequest, client: LLMClient = Depends(get_llm_client)):
	prompt = req.prompt if req.prompt is not None else req.text
	if not isinstance(prompt, str) or not prompt.strip():
		return _error(400, "Missing 'prompt' in request body.")
	options, invalid = read_generation_options(req.temperature, req.max_tokens, req.top_p)
	if invalid:
		return _error(400, f"Invalid '{invalid}' in request body.")
	return await _relay(client, prompt, **options)


@router.post("/ask")
async def ask(req: AskRequest, client: LLMClient = Depends(get_llm_client)):
	if not isinstance(req.text, str) or not req.text.strip():
		return _error(400, "Missing 'text' in request body.")
	composed = compose(req.text, req.tier, req.subject)
	result = await _relay(client, composed.text, **composed.generation.as_dict())
	if isinstance(result, JSONResponse):
		return result
	return {
		**result,
		"tier": composed.tier.value,
		"subject": composed.subject,
		"generation": composed.generation.as_dict(),
	}


@router.get("/tiers")
def list_tiers():
	return {
		"tiers": [
			{"key": tier.value, "label": profile.label, "generation": profile.generation.as_dict()}
			for tier, profile in TIER_PROFILES.items()
		]
	}


@router.post("/tts")
async def tts(req: TtsRequest):
	# Speech is synthesized in the browser; this endpoint only reserves the route
	if not isinstance(req.text, str) or not req.text:
		return _error(400, "Missing 'text' in request body.")
	if not settings.tts_provider:
		return _error(
			501,
			"TTS provider not configured on backend.",
			suggestion="Use frontend speechSynthesis.speak(), or set TTS_PROVIDER and implement server-side TTS.",
		)
	return _error(501, "TTS not implemented on backend yet.")
