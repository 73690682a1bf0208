from __future__ import annotations

import logging
import os
import time
from typing import Optional

from openai import OpenAI
from openai import APIConnectionError, APITimeoutError, RateLimitError, InternalServerError

from .llm_base import LLMAdapter, LLMOptions, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIAdapter(LLMAdapter):
    def __init__(self, model: Optional[str] = None, max_attempts: int = 4) -> None:
        self.api_key = os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is not set.")
        self.client = OpenAI(api_key=self.api_key)
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.max_attempts = max_attempts

    def complete(
        self, system_prompt: str, user_prompt: str, options: Optional[LLMOptions] = None
    ) -> LLMResponse:
        options = options or LLMOptions()
        extra = {"response_format": {"type": "json_object"}} if options.json_mode else {}
        attempt = 0
        backoff = 1.0
        while True:
            attempt += 1
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    max_tokens=options.max_output_tokens,
                    temperature=options.temperature,
                    **extra,
                )
                content = response.choices[0].message.content
                if content is None:
                    raise RuntimeError("OpenAI returned empty content.")
                usage = getattr(response, "usage", None)
                tokens_in = getattr(usage, "prompt_tokens", None) or 0
                tokens_out = getattr(usage, "completion_tokens", None) or 0
                if usage:
                    logger.info(
                        "[openai] model=%s prompt_tokens=%s completion_tokens=%s",
                        self.model,
                        tokens_in,
                        tokens_out,
                    )
                else:
                    logger.info("[openai] usage not provided by SDK")
                return LLMResponse(
                    raw_text=content, tokens_in=tokens_in, tokens_out=tokens_out, model=self.model
                )
            except RateLimitError as exc:
                error = getattr(exc, "error", None)
                code = getattr(error, "code", None)
                if code == "insufficient_quota":
                    raise RuntimeError(
                        "OpenAI API quota exceeded. Please enable billing in your OpenAI account."
                    ) from exc
                if attempt >= self.max_attempts:
                    raise
            except (APITimeoutError, APIConnectionError, InternalServerError):
                if attempt >= self.max_attempts:
                    raise
            logger.warning("[openai] transient error on attempt %s, sleeping %.1fs", attempt, backoff)
            time.sleep(backoff)
            backoff *= 2
