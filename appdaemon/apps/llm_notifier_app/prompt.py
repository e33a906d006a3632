from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Sequence

from .models import NotificationEvent

TITLE_MAX_CHARS = 32
SUBTITLE_MAX_CHARS = 32
BODY_MAX_CHARS = 80

SYSTEM_RULES = """Analyze the security camera image and generate a notification.

CRITICAL RULES (DO NOT VIOLATE):
1. ONLY use names if metadata contains "Maybe: [name]" - use that EXACT name WITHOUT "Maybe:"
2. If NO name in metadata, use generic terms: Person, Man, Woman, Visitor
3. NEVER make up names - only use names from metadata
4. NEVER include "Maybe:" in your response - only use the actual name
5. Title format MUST be: "[Person/Object] at [location]"
6. Some platforms only show title+body - put ALL critical info there
7. Each field MUST contain different information - no repetition between fields
8. Response MUST be valid JSON with exactly three fields: title, subtitle, body
9. If using a person's name in title, use the same name in body - never switch to generic terms"""

SCHEMA_CONSTRAINT = (
    "CRITICAL: The response must be in JSON format with a message 'title', 'subtitle', and 'body'. "
    f"The title and subtitle must be EXACTLY {TITLE_MAX_CHARS} characters or less. "
    f"The body must be EXACTLY {BODY_MAX_CHARS} characters or less. "
    "Any response exceeding these limits is invalid."
)

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "notification_response",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "subtitle": {"type": "string"},
                "body": {"type": "string"},
            },
            "required": ["title", "subtitle", "body"],
            "additionalProperties": False,
        },
    },
}

ORIGINAL_MESSAGE_INSTRUCTION = (
    "Extract any 'Maybe: [name]' from the original text and use that name. "
    "Each field (title, subtitle, body) must contain DIFFERENT information - no repetition between fields."
)

DEFAULT_USER_PROMPT = """STYLE PREFERENCES:

Title: Include person names ONLY when provided in metadata, otherwise use generic terms
- When name known: "Richard at front door"
- When name unknown: "Person at front door"
- For vehicles: Include license plate if clearly visible (e.g., "White Camry ABC123")

Subtitle: Category marker
- Format: "[Type] • [Area]"
- Examples: "Person • Indoor", "Vehicle • Street"

Body: Focus on actions and key visual details
- Describe what's happening in the scene
- Include relevant clothing, objects, or movements
- Include license plate in body if visible but not in title
- Examples:
  "Walking toward garage while checking phone and carrying a shopping bag"
  "White sedan with plate XYZ789 pulling slowly into space with headlights on"
  "Tall figure in blue jacket with package approaching and ringing doorbell"

Common locations: driveway, street, kitchen, living room, front door, yard, garage

Avoid generic phrases like "motion detected" or "person detected\""""


@dataclass(frozen=True)
class InferenceRequest:
    system_prompt: str
    user_style_text: str
    schema_constraint: str
    images: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def system_content(self) -> str:
        return f"{self.system_prompt}\n\n{self.user_style_text}\n\n{self.schema_constraint}"

    def to_payload(self, *, json_schema: bool = True) -> dict[str, Any]:
        """
        Chat Completions request body (model is added by the provider). Without
        `json_schema` the output shape is only asked for in the system prompt.
        """
        user_content: list[dict[str, Any]] = [
            {
                "type": "text",
                "text": f"Original notification metadata: {json.dumps(self.metadata, indent=2, ensure_ascii=False)}",
            }
        ]
        user_content.extend({"type": "image_url", "image_url": {"url": url}} for url in self.images)
        payload: dict[str, Any] = {
            "messages": [
                {"role": "system", "content": self.system_content},
                {"role": "user", "content": user_content},
            ],
        }
        if json_schema:
            payload["response_format"] = RESPONSE_SCHEMA
        return payload


def build_request(user_style_text: str, image_refs: Sequence[str], metadata: dict[str, Any]) -> InferenceRequest:
    # Style text is operator-supplied and echoed as-is.
    return InferenceRequest(
        system_prompt=SYSTEM_RULES,
        user_style_text=str(user_style_text or ""),
        schema_constraint=SCHEMA_CONSTRAINT,
        images=tuple(image_refs),
        metadata=dict(metadata),
    )


def build_metadata(event: NotificationEvent, include_original_message: bool) -> dict[str, Any]:
    if not include_original_message:
        return {}
    return {
        "originalTitle": event.title,
        "originalSubtitle": event.subtitle,
        "originalBody": event.body,
        "instruction": ORIGINAL_MESSAGE_INSTRUCTION,
    }
