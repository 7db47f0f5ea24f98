from __future__ import annotations
import math
from typing import Any, Dict, Optional, Tuple


def _is_number(value: Any) -> bool:
	return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def read_generation_options(
	temperature: Any = None,
	max_tokens: Any = None,
	top_p: Any = None,
) -> Tuple[Dict[str, Any], Optional[str]]:
	"""Validate client-supplied sampling options.

	Returns the keyword arguments for the provider call and, when a value is
	unusable, the name of the first offending field (missing values are fine).
	"""
	if temperature is not None and not _is_number(temperature):
		return {}, "temperature"
	if max_tokens is not None:
		if not _is_number(max_tokens) or int(max_tokens) != max_tokens or max_tokens <= 0:
			return {}, "max_tokens"
		max_tokens = int(max_tokens)
	if top_p is not None and not _is_number(top_p):
		return {}, "top_p"
	return {"temperature": temperature, "max_output_tokens": max_tokens, "top_p": top_p}, None
