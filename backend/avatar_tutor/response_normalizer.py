from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True)
class Matched:
	"""A reply recovered from a known provider shape.

	Attributes:
		text: Trimmed, non-empty reply text
		rule: Name of the shape rule that produced it
	"""
	text: str
	rule: str


@dataclass(frozen=True)
class Unrecognized:
	"""Provider body with no recognizable text field.

	Attributes:
		envelope: The provider body exactly as received
	"""
	envelope: Any

	def serialized(self) -> str:
		"""Compact JSON of the envelope, or its str() form when not serializable.

		Envelopes nested too deep for either end up as the bare object repr.
		"""
		try:
			return json.dumps(self.envelope, ensure_ascii=False, separators=(",", ":"))
		except (TypeError, ValueError, RecursionError):
			pass
		try:
			return str(self.envelope)
		except RecursionError:
			return object.__repr__(self.envelope)


Extraction = Union[Matched, Unrecognized]


# ============================================================================
# SAFE ACCESS
# ============================================================================

def dig(value: Any, *path: Union[str, int]) -> Any:
	"""Follow a key/index path, returning None as soon as a step is missing.

	String steps only descend into mappings and integer steps only into lists
	or tuples, so a wrong container type anywhere counts as missing.
	"""
	for key in path:
		if isinstance(key, int):
			if not isinstance(value, (list, tuple)) or not 0 <= key < len(value):
				return None
			value = value[key]
		else:
			if not isinstance(value, Mapping):
				return None
			value = value.get(key)
	return value


def _clean(value: Any) -> Optional[str]:
	if isinstance(value, str) and value.strip():
		return value.strip()
	return None


# ============================================================================
# SHAPE RULES (tried in order, first non-empty wins)
# ============================================================================

def candidate_text(envelope: Any) -> Optional[str]:
	"""Gemini shape: candidates[0].content.parts[0].text."""
	return _clean(dig(envelope, "candidates", 0, "content", "parts", 0, "text"))


def _outputs_text(envelope: Any) -> Optional[str]:
	# Alternate nesting used by some Gemini API versions
	return _clean(dig(envelope, "outputs", 0, "content", 0, "text"))


def _convenience_text(envelope: Any) -> Optional[str]:
	return _clean(dig(envelope, "text")) or _clean(dig(envelope, "response", "text"))


def _choice_text(envelope: Any) -> Optional[str]:
	choice = dig(envelope, "choices", 0)
	content = dig(choice, "message", "content")
	if content is None:
		content = dig(choice, "text")
	return _clean(content)


def _joined_parts_text(envelope: Any) -> Optional[str]:
	parts = dig(envelope, "candidates", 0, "content", "parts")
	if not isinstance(parts, list) or not parts:
		return None
	texts = [p["text"] for p in parts if isinstance(p, Mapping) and isinstance(p.get("text"), str) and p["text"]]
	return _clean("\n\n".join(texts))


_RULES: List[Tuple[str, Callable[[Any], Optional[str]]]] = [
	("candidate_part", candidate_text),
	("output_content", _outputs_text),
	("text_field", _convenience_text),
	("chat_choice", _choice_text),
	("candidate_parts_joined", _joined_parts_text),
]


# ============================================================================
# PUBLIC API
# ============================================================================

def extract_reply(envelope: Any) -> Optional[Extraction]:
	"""Classify a provider body and pull out its reply text.

	Rules are evaluated one at a time and the first one returning non-blank
	text wins, so the multi-part join only runs when the single-part read and
	the cheaper shapes found nothing.

	Args:
		envelope: Parsed JSON body from the provider (any JSON value)

	Returns:
		Matched with the reply, Unrecognized when no rule matched, or None
		when there was no provider output at all
	"""
	if envelope is None:
		return None
	for name, rule in _RULES:
		text = rule(envelope)
		if text:
			return Matched(text=text, rule=name)
	return Unrecognized(envelope=envelope)


def extract_text(envelope: Any) -> Optional[str]:
	"""Best-effort reply string: the matched text or the serialized body.

	Returns None only for a None envelope.
	"""
	result = extract_reply(envelope)
	if result is None:
		return None
	if isinstance(result, Matched):
		return result.text
	return result.serialized()
