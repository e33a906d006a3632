from __future__ import annotations

from typing import Any

from .errors import SchemaError
from .models import InferenceResponse
from .prompt import BODY_MAX_CHARS, SUBTITLE_MAX_CHARS, TITLE_MAX_CHARS

REQUIRED_FIELDS = ("title", "subtitle", "body")


def validate_response(parsed: Any) -> InferenceResponse:
    """
    Shape check only. The 32/32/80 budgets are asked of the model in the prompt
    but an over-length response is still accepted.
    """
    if not isinstance(parsed, dict):
        raise SchemaError(f"Invalid response format from LLM: expected object, got {type(parsed).__name__}")
    bad = [k for k in REQUIRED_FIELDS if not isinstance(parsed.get(k), str)]
    if bad:
        raise SchemaError(f"Invalid response format from LLM: missing or non-string {', '.join(bad)}")
    return InferenceResponse(title=parsed["title"], subtitle=parsed["subtitle"], body=parsed["body"])


def over_budget_fields(response: InferenceResponse) -> list[str]:
    limits = {"title": TITLE_MAX_CHARS, "subtitle": SUBTITLE_MAX_CHARS, "body": BODY_MAX_CHARS}
    return [k for k, limit in limits.items() if len(getattr(response, k)) > limit]
