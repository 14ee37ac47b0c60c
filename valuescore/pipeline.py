"""
Extraction Pipeline — From User Text to Diagnostic Envelope

Connects the steps into a single flow:
Compose prompt → Generate → Strip echo → Extract object → Parse → Persist → Envelope.

Only input validation, configuration and the inference call itself can fail
the request. Parse and persistence problems are reported in the envelope
alongside whatever output the model produced.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from valuescore.config import ExtractorConfig
from valuescore.errors import ConfigurationError, PersistenceError
from valuescore.inference import InferenceClient
from valuescore.output_parser import (
    ParseOutcome,
    extract_first_json_object,
    parse_extracted,
    strip_prompt_echo,
)
from valuescore.prompts import compose_prompt
from valuescore.storage import ExtractionStore, PersistedRecord

logger = logging.getLogger(__name__)

# Time kept back from the host deadline for composing and sending the response
RESPONSE_MARGIN = 0.25


@dataclass(frozen=True)
class PersistOutcome:
    """Either the stored record or the reason it was not stored."""
    record: PersistedRecord | None = None
    error: str | None = None


async def persist_result(
    store: ExtractionStore,
    input_text: str,
    result: dict | None,
    model_label: str,
    timeout: float | None = None,
) -> PersistOutcome:
    """
    Save the extraction off the event loop.

    Never raises: a failed write is returned as an outcome so the caller
    still gets the model output. With a timeout, a write that has not
    finished in time is abandoned and reported the same way.
    """
    if timeout is not None and timeout <= 0:
        logger.warning("Persistence skipped: no time left before the host deadline")
        return PersistOutcome(error="Persistence skipped: no time left before the host deadline")

    try:
        record = await asyncio.wait_for(
            asyncio.to_thread(store.save, input_text, result, model_label),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        # Without a deadline this came from the store itself
        message = ("Persistence timed out" if timeout is None
                   else f"Persistence did not finish within {timeout:.2f}s")
        logger.warning(message)
        return PersistOutcome(error=message)
    except PersistenceError as e:
        logger.warning("Persistence failed: %s", e)
        return PersistOutcome(error=str(e))
    except Exception as e:
        logger.warning("Persistence failed unexpectedly: %s", e, exc_info=True)
        return PersistOutcome(error=f"Unexpected persistence failure: {e}")
    return PersistOutcome(record=record)


def compose_envelope(output: str, parsed: ParseOutcome, persisted: PersistOutcome) -> dict:
    """Merge the independent step outcomes into the response body."""
    record = persisted.record
    return {
        "output": output,
        "parseError": parsed.error,
        "persisted": {
            "id": record.id,
            "createdAt": record.created_at.isoformat(),
        } if record is not None else None,
        "persistError": persisted.error,
    }


async def run_extraction(
    text: str,
    config: ExtractorConfig,
    client: InferenceClient,
    store: ExtractionStore,
) -> dict:
    """
    Full pipeline for one request.

    Raises ValidationError, ConfigurationError, UpstreamTimeoutError or
    UpstreamError; every later problem ends up in the returned envelope.
    The persistence write gets whatever is left of the host deadline.
    """
    started = time.monotonic()
    prompt = compose_prompt(text, config.instructions)
    if not config.api_key:
        raise ConfigurationError("Missing HUGGINGFACE_API_KEY on server.")

    logger.info("Extraction request (%d chars, model=%s)", len(text), config.model_label)
    raw = await client.generate(prompt, config.api_key)

    cleaned = strip_prompt_echo(raw, prompt)
    candidate = extract_first_json_object(cleaned)
    parsed = parse_extracted(candidate)
    if candidate is None:
        logger.info("No JSON object in model output (%d chars)", len(cleaned))

    output = candidate if candidate is not None else cleaned
    remaining = config.host_deadline - (time.monotonic() - started) - RESPONSE_MARGIN
    persisted = await persist_result(
        store, text, parsed.value, config.model_label, timeout=remaining
    )

    logger.info(
        "Extraction complete (parsed=%s, persisted=%s)",
        parsed.ok, persisted.record is not None,
    )
    return compose_envelope(output, parsed, persisted)
