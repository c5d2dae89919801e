#===========================================================================
# ohm/diagrams/generator.py
# Bytez text-to-image interface: circuit JSON → prompt → rendered image →
# stored diagram URL.
#===========================================================================

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from ohm.config import settings
from ohm.diagrams.circuit import circuit_errors
from ohm.diagrams.prompt_builder import build_fritzing_prompt
from ohm.diagrams.storage import save_diagram

logger = logging.getLogger("uvicorn.error")


class DiagramGenerationError(RuntimeError):
    """Anything that stops a circuit from becoming a stored diagram."""


def _headers() -> dict[str, str]:
    # Bytez takes the raw key, no "Bearer" scheme
    return {"Authorization": settings.BYTEZ_API_KEY, "Content-Type": "application/json"}


def _model_url() -> str:
    return f"{settings.BYTEZ_API_URL}/{settings.BYTEZ_MODEL}"


async def call_bytez_image_api(prompt: str, reference_type: str, *,
                               client: Optional[httpx.AsyncClient] = None) -> str:
    """POST the prompt to the image model; returns the temporary output URL."""
    if not settings.BYTEZ_API_KEY:
        raise DiagramGenerationError("BYTEZ_API_KEY environment variable is not set")

    logger.info("[BYTEZ] generating image with %s reference using %s", reference_type, settings.BYTEZ_MODEL)

    async def _post(c: httpx.AsyncClient) -> httpx.Response:
        return await c.post(_model_url(), headers=_headers(), json={"text": prompt})

    try:
        if client is not None:
            r = await _post(client)
        else:
            async with httpx.AsyncClient(timeout=settings.BYTEZ_TIMEOUT) as c:
                r = await _post(c)
    except httpx.HTTPError as e:
        raise DiagramGenerationError(f"BYTEZ API call failed: {e}") from e

    if r.status_code >= 400:
        logger.error("[BYTEZ] error response (%s): %s", r.status_code, r.text)
        raise DiagramGenerationError(f"BYTEZ API error ({r.status_code}): {r.text[:500]}")

    try:
        data = r.json()
    except ValueError as e:
        raise DiagramGenerationError("Invalid response from BYTEZ API: body is not JSON") from e

    if not isinstance(data, dict):
        raise DiagramGenerationError(f"Invalid response from BYTEZ API: {data!r}")
    if data.get("error"):
        raise DiagramGenerationError(f"BYTEZ API returned error: {data['error']}")
    output = data.get("output")
    if not output or not isinstance(output, str):
        raise DiagramGenerationError("Invalid response from BYTEZ API: missing output URL")

    logger.info("[BYTEZ] image generated")
    return output


async def download_image(url: str, *, client: Optional[httpx.AsyncClient] = None) -> bytes:
    try:
        if client is not None:
            r = await client.get(url)
        else:
            async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as c:
                r = await c.get(url)
    except httpx.HTTPError as e:
        raise DiagramGenerationError(f"Failed to download image: {e}") from e
    if r.status_code >= 400:
        raise DiagramGenerationError(f"Failed to download image: HTTP {r.status_code} {r.reason_phrase}")
    return r.content


async def generate_fritzing_diagram(circuit_json: Any, artifact_id: str, chat_id: str, *,
                                    client: Optional[httpx.AsyncClient] = None) -> str:
    """
    Render a Fritzing-style breadboard diagram for the circuit and return the
    permanent URL. Raises DiagramGenerationError on any failure.
    """
    errors = circuit_errors(circuit_json)
    if errors:
        raise DiagramGenerationError(
            "Invalid circuit JSON format: "
            + "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        )

    prompt, reference_type = build_fritzing_prompt(circuit_json)
    logger.info("[DIAGRAM] generating %s circuit diagram for artifact %s", reference_type, artifact_id)

    temp_url = await call_bytez_image_api(prompt, reference_type, client=client)
    # output URLs expire after about an hour, keep our own copy
    image = await download_image(temp_url, client=client)

    key = f"diagrams/{chat_id}/{artifact_id}-{int(time.time() * 1000)}.png"
    try:
        url = save_diagram(key, image)
    except (OSError, ValueError) as e:
        raise DiagramGenerationError(f"Failed to upload diagram: {e}") from e

    logger.info("[DIAGRAM] diagram stored: %s", url)
    return url
