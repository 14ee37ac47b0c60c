"""
Output Parser — Extract structured JSON from LLM responses.

Handles the output of a generation model that has no JSON-aware contract:
a verbatim echo of the prompt, commentary before or after the answer,
several candidate objects, and truncated or malformed JSON.

Three steps, each usable on its own:
1. strip_prompt_echo: drop a leading copy of the prompt
2. extract_first_json_object: find the first balanced top-level {...} span
3. parse_extracted: strict json.loads, failures reported rather than raised
"""

import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

NO_OBJECT_FOUND = "No JSON object found in model output."


@dataclass(frozen=True)
class ParseOutcome:
    """Either a decoded object or the reason there is none."""
    value: dict | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def strip_prompt_echo(text: str, prompt: str) -> str:
    """
    Remove a leading verbatim copy of the prompt.

    Leading whitespace before the echo is tolerated. Only an exact prefix
    match is removed; anything else is returned unchanged.
    """
    if not prompt:
        return text
    candidate = text.lstrip()
    if candidate.startswith(prompt):
        logger.debug("Stripped %d-char prompt echo", len(prompt))
        return candidate[len(prompt):].lstrip()
    return text


def extract_first_json_object(text: str) -> str | None:
    """
    Return the first balanced top-level JSON object in text, verbatim.

    Braces inside string literals are ignored, and a backslash inside a
    string escapes the next character (including a quote). Later objects
    are ignored. Returns None when there is no '{' or the first object
    never closes.
    """
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


def parse_extracted(candidate: str | None) -> ParseOutcome:
    """
    Strictly decode an extracted slice.

    A missing slice is reported without attempting a decode. Decode errors
    are captured as the outcome's error message.
    """
    if candidate is None:
        return ParseOutcome(error=NO_OBJECT_FOUND)

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.info("Extracted object is not valid JSON: %s", e)
        return ParseOutcome(error=f"Invalid JSON in model output: {e}")

    if not isinstance(value, dict):
        # Direct callers may pass arbitrary text
        return ParseOutcome(error="Model output is not a JSON object.")
    return ParseOutcome(value=value)


def parse_json_response(text: str, prompt: str = "") -> dict | None:
    """
    Strip, extract and parse in one call.

    Returns the decoded object, or None if no valid object was found.
    """
    if not text or not text.strip():
        return None
    cleaned = strip_prompt_echo(text, prompt)
    return parse_extracted(extract_first_json_object(cleaned)).value
