from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping


class Tier(str, Enum):
	"""Instructional tier (audience grade) selected by the client."""

	GENERAL = "general"
	CLASS3 = "class3"
	CLASS7 = "class7"
	CLASS10 = "class10"

	@classmethod
	def resolve(cls, value: Any) -> "Tier":
		"""Map any client-supplied value to a tier, defaulting to GENERAL."""
		if isinstance(value, cls):
			return value
		if isinstance(value, str):
			try:
				return cls(value)
			except ValueError:
				pass
		return cls.GENERAL


@dataclass(frozen=True)
class GenerationParameters:
	"""Sampling settings sent upstream. top_p is the nucleus-sampling threshold."""

	temperature: float
	max_output_tokens: int
	top_p: float

	def as_dict(self) -> Dict[str, Any]:
		return asdict(self)


@dataclass(frozen=True)
class TierProfile:
	label: str
	tone: str
	vocabulary: str
	sentence_advice: str
	length_limit: str
	examples_instruction: str
	check_question: str
	generation: GenerationParameters


TIER_PROFILES: Mapping[Tier, TierProfile] = MappingProxyType({
	Tier.GENERAL: TierProfile(
		label="General audience",
		tone="friendly and clear",
		vocabulary="plain",
		sentence_advice="short sentences; avoid technical jargon",
		length_limit="Keep answers concise.",
		examples_instruction="Use a simple example if helpful.",
		check_question="Ask one brief question at the end to check understanding.",
		generation=GenerationParameters(temperature=0.25, max_output_tokens=220, top_p=0.9),
	),
	Tier.CLASS3: TierProfile(
		label="Class 3 (about 8 years old)",
		tone="very friendly, playful, encouraging",
		vocabulary="very simple; words a child in class 3 knows",
		sentence_advice="use short sentences and simple phrases (1 or 2 short sentences per idea)",
		length_limit="Keep responses very short: about 30 to 70 words (one short paragraph).",
		examples_instruction="Use a relatable analogy (toys, pets, school) and one short example.",
		check_question="Finish with a single simple question (yes/no or one-word answer).",
		generation=GenerationParameters(temperature=0.20, max_output_tokens=120, top_p=0.9),
	),
	Tier.CLASS7: TierProfile(
		label="Class 7 (about 13 years old)",
		tone="friendly, slightly more explanatory",
		vocabulary="everyday vocabulary with a few new words explained",
		sentence_advice="short paragraphs (2 or 3 sentences each); introduce one new idea at a time",
		length_limit="Keep responses concise: about 80 to 140 words (1 or 2 short paragraphs).",
		examples_instruction="Use a clear example and one analogy (everyday life or simple science).",
		check_question="Ask one quick comprehension question (multiple-choice or short answer).",
		generation=GenerationParameters(temperature=0.25, max_output_tokens=220, top_p=0.9),
	),
	Tier.CLASS10: TierProfile(
		label="Class 10 (about 15 to 16 years old)",
		tone="clear, slightly formal but friendly, explanatory",
		vocabulary="use proper subject vocabulary but define terms briefly",
		sentence_advice="use 2 or 3 short paragraphs; allow slightly longer sentences",
		length_limit="Keep responses focused: about 120 to 250 words as needed.",
		examples_instruction="Give an example or small step-by-step explanation; show one mini-analogy.",
		check_question="Ask one short comprehension or application question.",
		generation=GenerationParameters(temperature=0.30, max_output_tokens=350, top_p=0.9),
	),
})

if set(TIER_PROFILES) != set(Tier):
	raise RuntimeError("TIER_PROFILES must define every Tier")


def get_profile(tier: Any) -> TierProfile:
	return TIER_PROFILES[Tier.resolve(tier)]
