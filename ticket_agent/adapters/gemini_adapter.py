from __future__ import annotations

import logging
import os
import random
import time
from typing import List, Optional

from google import genai
from google.genai import types

from .llm_base import LLMAdapter, LLMOptions, LLMResponse

logger = logging.getLogger(__name__)


class GeminiAdapter(LLMAdapter):
    def __init__(self, model: Optional[str] = None) -> None:
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY is not set.")

        self.client = genai.Client(api_key=api_key)

        primary = model or os.getenv("GEMINI_MODEL", "gemini-flash-latest")
        self.model = primary
        self.model_candidates: List[str] = [primary]
        for fallback in ("gemini-pro", "gemini-1.5-pro"):
            if fallback not in self.model_candidates:
                self.model_candidates.append(fallback)

        self.max_attempts = int(os.getenv("GEMINI_MAX_ATTEMPTS", "5"))
        self.base_delay = float(os.getenv("GEMINI_BASE_DELAY_SECONDS", "1.0"))

    def _is_transient(self, err: Exception) -> bool:
        msg = str(err).lower()
        return any(s in msg for s in ["503", "unavailable", "429", "too many", "timeout", "temporarily"])

    def complete(
        self, system_prompt: str, user_prompt: str, options: Optional[LLMOptions] = None
    ) -> LLMResponse:
        options = options or LLMOptions()
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=options.temperature,
            max_output_tokens=options.max_output_tokens,
            response_mime_type="application/json" if options.json_mode else None,
        )
        last_err: Exception | None = None

        for model in self.model_candidates:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    logger.info("[gemini] model=%s attempt=%s/%s", model, attempt, self.max_attempts)
                    response = self.client.models.generate_content(
                        model=model,
                        contents=user_prompt,
                        config=config,
                    )
                    text = getattr(response, "text", None)
                    if not text:
                        raise RuntimeError("Gemini returned empty content.")
                    usage = getattr(response, "usage_metadata", None)
                    return LLMResponse(
                        raw_text=text,
                        tokens_in=getattr(usage, "prompt_token_count", None) or 0,
                        tokens_out=getattr(usage, "candidates_token_count", None) or 0,
                        model=model,
                    )

                except Exception as e:
                    last_err = e
                    if not self._is_transient(e):
                        break

                    delay = self.base_delay * (2 ** (attempt - 1)) + random.random() * 0.5
                    logger.warning("[gemini] transient error: %s -> sleeping %.2fs", e, delay)
                    time.sleep(delay)

            logger.warning("[gemini] switching model after failures: %s", model)

        raise RuntimeError(
            "Gemini generate_content failed for all candidate models. "
            f"Last error: {last_err}"
        ) from last_err
