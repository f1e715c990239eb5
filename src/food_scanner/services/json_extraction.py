"""Locate a JSON object inside free-form model output."""

import json

from food_scanner.domain.errors import MalformedResponseError

_DECODER = json.JSONDecoder()


def extract_json_object(text: str) -> dict[str, object]:
    """Return the first JSON object embedded in text.

    Models often wrap their JSON in prose or a fenced block. Each ``{`` is
    tried as the start of a document with the real JSON tokenizer, so braces
    inside string values do not confuse the match.
    """
    start = text.find("{")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        return value
    raise MalformedResponseError("No JSON object found in response")
