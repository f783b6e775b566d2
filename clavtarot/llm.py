"""
llm.py — Gemini client used to narrate a reading in the persona's voice.

Only `logic.perform_reading(explain_with_llm=True)` calls into this module;
everything else in the package works without a token.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

import google.generativeai as genai

from . import config

logger = logging.getLogger(__name__)


def _part_texts(resp: Any) -> Iterable[str]:
    for cand in getattr(resp, "candidates", None) or []:
        content = getattr(cand, "content", None)
        for part in getattr(content, "parts", None) or []:
            text = getattr(part, "text", None)
            if text:
                yield text


def _extract_text(resp: Any) -> str:
    """
    Plain text of a Gemini response.

    `resp.text` raises ValueError when the first candidate holds no simple
    text part (e.g. it was blocked); then the text parts of all candidates
    are joined instead.
    """
    try:
        text = getattr(resp, "text", None)
    except ValueError:
        text = None
    if text:
        return text
    parts: List[str] = list(_part_texts(resp))
    return "\n".join(parts).strip()


def chat(prompt: str, model: Optional[str] = None, temperature: float = 0.2) -> str:
    """
    Send one prompt and return the answer text ("" when the model said nothing).

    Raises RuntimeError without GEMINI_TOKEN; SDK errors propagate.
    """
    if not config.GEMINI_TOKEN:
        raise RuntimeError("GEMINI_TOKEN is not set; add it to your environment or .env to enable narration")

    model_name = model or config.DEFAULT_MODEL
    genai.configure(api_key=config.GEMINI_TOKEN)
    logger.debug("Gemini request: model=%s temperature=%s prompt_chars=%d", model_name, temperature, len(prompt))

    resp = genai.GenerativeModel(model_name=model_name).generate_content(
        prompt,
        generation_config={"temperature": float(temperature)},
    )
    text = _extract_text(resp)
    if not text:
        logger.info("Gemini returned no text for model %s", model_name)
    return text
