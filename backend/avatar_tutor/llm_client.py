from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional
from urllib.parse import quote

import httpx

from .response_normalizer import Extraction, extract_reply
from .settings import Settings, settings

logger = logging.getLogger(__name__)

GEMINI = "gemini"
OPENAI = "openai"

PROVIDER_LABELS = {GEMINI: "Gemini", OPENAI: "OpenAI"}

# Chat-completions defaults when the caller does not pick its own
OPENAI_DEFAULT_TEMPERATURE = 0.7
OPENAI_DEFAULT_MAX_TOKENS = 800


class ProviderError(RuntimeError):
	def __init__(self, provider: str, message: str) -> None:
		super().__init__(message)
		self.provider = provider

	@property
	def label(self) -> str:
		return PROVIDER_LABELS.get(self.provider, self.provider)


class ProviderNotConfiguredError(ProviderError):
	def __init__(self, message: str = "No LLM provider configured. Set GEMINI_API_KEY or OPENAI_API_KEY in .env") -> None:
		super().__init__("", message)


class ProviderResponseError(ProviderError):
	"""Upstream answered with a non-2xx status."""

	def __init__(self, provider: str, status_code: int, body: Any) -> None:
		super().__init__(provider, f"{PROVIDER_LABELS.get(provider, provider)} API returned {status_code}")
		self.status_code = status_code
		self.body = body


class ProviderRequestError(ProviderError):
	"""Upstream could not be reached (DNS, connect, timeout, ...)."""

	def __init__(self, provider: str, details: str) -> None:
		super().__init__(provider, f"{PROVIDER_LABELS.get(provider, provider)} request failed: {details}")
		self.details = details


@dataclass
class ProviderReply:
	provider: str
	model: str
	envelope: Any

	def extract(self) -> Optional[Extraction]:
		return extract_reply(self.envelope)


def _json_or_none(r: httpx.Response) -> Any:
	try:
		return r.json()
	except (ValueError, RecursionError):
		return None


class LLMClient:
	def __init__(self, config: Optional[Settings] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.settings = config or settings
		self.gemini_model = self.settings.gemini_model
		self.gemini_url = (
			f"{self.settings.gemini_api_url.rstrip('/')}/models/{quote(self.gemini_model, safe='')}:generateContent"
		)
		self.openai_model = self.settings.openai_model
		self._client = httpx.AsyncClient(timeout=self.settings.request_timeout_seconds, transport=transport)

	@property
	def provider(self) -> Optional[str]:
		if self.settings.gemini_api_key:
			return GEMINI
		if self.settings.openai_api_key:
			return OPENAI
		return None

	async def complete(
		self,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
		top_p: Optional[float] = None,
	) -> ProviderReply:
		"""Send a prompt to the configured provider and return its raw body."""
		options = {"temperature": temperature, "max_output_tokens": max_output_tokens, "top_p": top_p}
		provider = self.provider
		if provider is None:
			raise ProviderNotConfiguredError()
		if provider == OPENAI:
			return await self.call_openai(prompt, **options)
		try:
			return await self.call_gemini(prompt, **options)
		except (ProviderResponseError, ProviderRequestError) as primary_err:
			if not (self.settings.fallback_on_error and self.settings.openai_api_key):
				raise
			logger.warning("Gemini call failed (%s); retrying with OpenAI", primary_err)
			try:
				return await self.call_openai(prompt, **options)
			except ProviderError as fallback_err:
				raise fallback_err from primary_err

	async def call_gemini(
		self,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
		top_p: Optional[float] = None,
	) -> ProviderReply:
		api_key = self.settings.gemini_api_key
		if not api_key:
			raise ProviderNotConfiguredError("Missing GEMINI_API_KEY in environment variables")
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		generation_config: Dict[str, Any] = {}
		if temperature is not None:
			generation_config["temperature"] = temperature
		if max_output_tokens is not None:
			generation_config["maxOutputTokens"] = max_output_tokens
		if top_p is not None:
			generation_config["topP"] = top_p
		if generation_config:
			payload["generationConfig"] = generation_config
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {"Content-Type": "application/json"}
		if self.settings.gemini_key_in_query:
			params["key"] = api_key
		else:
			headers["x-goog-api-key"] = api_key

		logger.info("Calling Gemini model=%s prompt_chars=%d", self.gemini_model, len(prompt))
		try:
			r = await self._client.post(self.gemini_url, params=params, headers=headers, json=payload)
		except httpx.RequestError as net_err:
			logger.error("Error calling Gemini: %s", net_err)
			raise ProviderRequestError(GEMINI, str(net_err)) from net_err
		data = _json_or_none(r)
		if r.is_error:
			logger.error("Gemini API error %s %s", r.status_code, data)
			raise ProviderResponseError(GEMINI, r.status_code, data)
		return ProviderReply(provider=GEMINI, model=self.gemini_model, envelope=data)

	async def call_openai(
		self,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
		top_p: Optional[float] = None,
	) -> ProviderReply:
		api_key = self.settings.openai_api_key
		if not api_key:
			raise ProviderNotConfiguredError("Missing OPENAI_API_KEY in environment variables")
		headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
		payload: Dict[str, Any] = {
			"model": self.openai_model,
			"messages": [{"role": "user", "content": prompt}],
			"temperature": OPENAI_DEFAULT_TEMPERATURE if temperature is None else temperature,
			"max_tokens": OPENAI_DEFAULT_MAX_TOKENS if max_output_tokens is None else max_output_tokens,
		}
		if top_p is not None:
			payload["top_p"] = top_p

		logger.info("Calling OpenAI model=%s prompt_chars=%d", self.openai_model, len(prompt))
		try:
			r = await self._client.post(self.settings.openai_base_url, headers=headers, json=payload)
		except httpx.RequestError as net_err:
			logger.error("Error calling OpenAI: %s", net_err)
			raise ProviderRequestError(OPENAI, str(net_err)) from net_err
		if r.is_error:
			logger.error("OpenAI API error: %s %s", r.status_code, r.text)
			raise ProviderResponseError(OPENAI, r.status_code, r.text)
		return ProviderReply(provider=OPENAI, model=self.openai_model, envelope=_json_or_none(r))

	async def aclose(self) -> None:
		await self._client.aclose()


async def get_llm_client() -> AsyncIterator[LLMClient]:
	client = LLMClient()
	try:
		yield client
	finally:
		await client.aclose()
