from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class LLMOptions:
    temperature: float = 0.2
    max_output_tokens: int = 4096
    json_mode: bool = True


@dataclass
class LLMResponse:
    raw_text: str
    tokens_in: int = 0
    tokens_out: int = 0
    model: str = ""


class LLMAdapter(Protocol):
    model: str

    def complete(
        self, system_prompt: str, user_prompt: str, options: Optional[LLMOptions] = None
    ) -> LLMResponse:
        raise NotImplementedError


async def complete_async(
    adapter: LLMAdapter, system_prompt: str, user_prompt: str, options: Optional[LLMOptions] = None
) -> LLMResponse:
    return await asyncio.to_thread(adapter.complete, system_prompt, user_prompt, options)
