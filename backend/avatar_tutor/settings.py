from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Google Gemini (Generative Language API), preferred provider when a key is present
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	gemini_api_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta", validation_alias="GEMINI_API_URL")
	# Send the key as ?key= instead of the x-goog-api-key header
	gemini_key_in_query: bool = Field(default=False, validation_alias="GEMINI_KEY_IN_QUERY")

	# OpenAI-compatible chat completions (used when Gemini is not configured)
	openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
	openai_model: str = Field(default="gpt-3.5-turbo", validation_alias="OPENAI_MODEL")
	openai_base_url: str = Field(default="https://api.openai.com/v1/chat/completions", validation_alias="OPENAI_BASE_URL")

	# Retry a failed Gemini call once against OpenAI (needs OPENAI_API_KEY)
	fallback_on_error: bool = Field(default=False, validation_alias="LLM_FALLBACK_ON_ERROR")
	# Return the serialized provider body as the reply when no text could be extracted
	allow_raw_reply: bool = Field(default=False, validation_alias="ALLOW_RAW_REPLY")
	request_timeout_seconds: float = Field(default=30.0, validation_alias="LLM_TIMEOUT_SECONDS")

	cors_origin: str = Field(default="*", validation_alias="CORS_ORIGIN")
	tts_provider: str | None = Field(default=None, validation_alias="TTS_PROVIDER")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

	@property
	def cors_origins(self) -> List[str]:
		origins = [o.strip() for o in self.cors_origin.split(",") if o.strip()]
		return origins or ["*"]

	@property
	def providers(self) -> dict:
		return {"gemini": bool(self.gemini_api_key), "openai": bool(self.openai_api_key)}

settings = Settings()
