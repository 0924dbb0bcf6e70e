from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator, Protocol

import openai
from openai import AsyncOpenAI


GAME_MASTER_PROMPT = """
You are the Game Master for a text-based MUD driven by player actions.
Goals:
- Be immersive, but concise. 2-3 vivid sentences max.
- After the description, answer the player's request in a SHORT label.
- The label should be as brief as possible:
   - If player asks "Where am I?" -> location: Shadow Forest
   - If player asks about items -> items: dagger
- Do NOT list exits/items unless asked.
- Only describe what is currently relevant to the player's command.
- No long paragraphs, no inner monologues, no assumptions about intent.

You MUST follow this output format:

[2-3 sentence immersive description]
[label: the shortest possible answer that still matches the description]
""".strip()


class GenerationError(Exception):
    """Any failure of the text-generation provider, with a readable message."""


class LLMClient(Protocol):
    async def generate_text(self, prompt: str) -> str:
        ...

    def generate_text_stream(self, prompt: str) -> AsyncIterator[str]:
        ...


def _wrap(exc: Exception) -> GenerationError:
    if isinstance(exc, openai.APIError):
        return GenerationError(f"OpenAI API error: {exc.message}")
    return GenerationError(f"Failed to generate text: {exc}")


@dataclass
class OpenAIAdapter:
    api_key: str
    model: str = "gpt-4o-mini"
    temperature: float = 0.8
    max_tokens: int = 500

    _client: AsyncOpenAI = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.api_key:
            raise GenerationError("OpenAI API key is required")
        self._client = AsyncOpenAI(api_key=self.api_key)

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": GAME_MASTER_PROMPT},
            {"role": "user", "content": prompt},
        ]

    async def generate_text(self, prompt: str) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=self._messages(prompt),  # type: ignore[arg-type]
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise _wrap(e) from e

        text = completion.choices[0].message.content if completion.choices else None
        if not text:
            raise GenerationError("No response generated from OpenAI")
        return text

    async def generate_text_stream(self, prompt: str) -> AsyncIterator[str]:
        try:
            stream = await self._client.chat.completions.create(
                model=self.model,
                messages=self._messages(prompt),  # type: ignore[arg-type]
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=True,
            )
            # Leaving the block closes the upstream response, including on cancellation.
            async with stream:
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    content = chunk.choices[0].delta.content
                    if content:
                        yield content
        except Exception as e:
            raise _wrap(e) from e


def create_llm_client(
    provider: str = "openai",
    *,
    api_key: str | None,
    model: str = "gpt-4o-mini",
    temperature: float = 0.8,
    max_tokens: int = 500,
) -> LLMClient:
    if provider.lower() != "openai":
        raise GenerationError(f"Unsupported LLM provider: {provider}")
    if not api_key:
        raise GenerationError("OPENAI_API_KEY environment variable is required. Add it to your .env file.")
    return OpenAIAdapter(api_key=api_key, model=model, temperature=temperature, max_tokens=max_tokens)
