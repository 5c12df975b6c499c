"""Клиент внешнего сервиса генерации текста.

GenerationClient накапливает потоковый ответ, ограничивает его размер и
оборачивает вызов в RetryPolicy. Текст не интерпретируется.
"""
import logging
from typing import AsyncIterator, List, Protocol

import google.generativeai as genai

from app.domains.generation.retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESPONSE_CHARS = 1_000_000


class TextGenerator(Protocol):
    def stream(self, prompt: str) -> AsyncIterator[str]:
        ...


class GeminiTextGenerator:
    """Потоковая генерация через Google Gemini"""

    def __init__(self, api_key: str, model_name: str):
        if not api_key:
            raise ValueError("GEMINI_API_KEY is required to call the generation service")
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self._model = genai.GenerativeModel(model_name=model_name)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        response = await self._model.generate_content_async(prompt, stream=True)
        async for chunk in response:
            text = getattr(chunk, "text", None)
            if text:
                yield text


class GenerationClient:
    """Вызов сервиса генерации с повторами и ограничением размера ответа"""

    def __init__(
        self,
        generator: TextGenerator,
        retry_policy: RetryPolicy,
        max_response_chars: int = DEFAULT_MAX_RESPONSE_CHARS
    ):
        self.generator = generator
        self.retry_policy = retry_policy
        self.max_response_chars = max_response_chars

    async def generate(self, prompt: str) -> str:
        """Полный текст ответа; GenerationError после исчерпания попыток"""
        return await self.retry_policy.run(lambda: self._collect(prompt))

    async def _collect(self, prompt: str) -> str:
        parts: List[str] = []
        total = 0
        stream = self.generator.stream(prompt)

        try:
            async for chunk in stream:
                if total + len(chunk) > self.max_response_chars:
                    # Обрезанный текст считается полным ответом
                    parts.append(chunk[:self.max_response_chars - total])
                    logger.warning(
                        f"Generated text exceeded {self.max_response_chars} characters, truncating"
                    )
                    break
                parts.append(chunk)
                total += len(chunk)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        return "".join(parts)
