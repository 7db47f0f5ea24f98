from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

from .tiers import GenerationParameters, Tier, get_profile


GENERAL_SUBJECT = "general"

ROLE_FRAMING = (
	'You are "Spidey Teacher", a warm, playful, and patient teacher who explains things clearly. '
	"Use age-appropriate vocabulary and tone."
)

FORMATTING_RULES = " ".join([
	"Do not use code blocks.",
	"If you use bullet points, keep them to 3 or fewer short bullets.",
	"Avoid raw Markdown symbols in the visible text (no ** or ##).",
	"Do not ask for additional follow-ups unless asked; keep the answer self-contained.",
	"Use friendly punctuation and short sentences for younger grades.",
])

CLOSING_INSTRUCTION = (
	"Now answer the user's question below. Keep the answer within the length guidance for this grade "
	"and end with the short comprehension question as requested."
)


@dataclass(frozen=True)
class ComposedPrompt:
	text: str
	generation: GenerationParameters
	tier: Tier
	subject: Optional[str] = None


def _subject_clause(subject: Any) -> str:
	if not isinstance(subject, str) or not subject or subject == GENERAL_SUBJECT:
		return ""
	return f"Focus on the subject: {subject}."


def build_prompt(user_text: str, tier: Any = None, subject: Any = None) -> str:
	"""Assemble the grade-adapted instruction prompt.

	Segments are separated by a blank line and empty ones are dropped. The
	user text is appended unchanged as the last segment; callers are expected
	to reject blank input before getting here.
	"""
	cfg = get_profile(tier)
	segments = [
		ROLE_FRAMING,
		f"Grade instructions: {cfg.label}. Tone: {cfg.tone}. Vocabulary: {cfg.vocabulary}. "
		f"{cfg.sentence_advice}. {cfg.length_limit}",
		_subject_clause(subject),
		f"Instructions for examples: {cfg.examples_instruction} {cfg.check_question}",
		f"Formatting rules: {FORMATTING_RULES}",
		CLOSING_INSTRUCTION,
		f"User question: {user_text}",
	]
	return "\n\n".join(s for s in segments if s)


def get_generation_params(tier: Any = None) -> GenerationParameters:
	return get_profile(tier).generation


def compose(user_text: str, tier: Any = None, subject: Any = None) -> ComposedPrompt:
	resolved = Tier.resolve(tier)
	return ComposedPrompt(
		text=build_prompt(user_text, resolved, subject),
		generation=get_generation_params(resolved),
		tier=resolved,
		subject=subject if _subject_clause(subject) else None,
	)
