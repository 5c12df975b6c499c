import pytest

from app.domains.generation.client import GeminiTextGenerator, GenerationClient
from app.domains.generation.exceptions import GenerationError
from app.domains.generation.retry import RetryPolicy

from conftest import FakeGenerator, make_generation_client, no_sleep


async def test_joins_streamed_chunks():
    generator = FakeGenerator(["[CONTEO]\n", "Total: 3\n", "[TEL]\nok"])
    client = make_generation_client(generator)

    assert await client.generate("prompt") == "[CONTEO]\nTotal: 3\n[TEL]\nok"
    assert generator.prompts == ["prompt"]


async def test_truncates_oversized_response():
    generator = FakeGenerator(["abcd", "efgh", "ijkl"])
    client = GenerationClient(generator, RetryPolicy(sleep=no_sleep), max_response_chars=6)

    assert await client.generate("prompt") == "abcdef"
    assert generator.calls == 1


async def test_second_attempt_after_failure():
    generator = FakeGenerator(ConnectionError("reset"), "recovered")
    client = make_generation_client(generator)

    assert await client.generate("prompt") == "recovered"
    assert generator.calls == 2


async def test_two_failures_raise_with_second_message():
    generator = FakeGenerator(ConnectionError("first outage"), ConnectionError("second outage"), "unused")
    client = make_generation_client(generator)

    with pytest.raises(GenerationError) as exc_info:
        await client.generate("prompt")

    assert exc_info.value.message == "second outage"
    assert generator.calls == 2


def test_gemini_generator_requires_api_key():
    with pytest.raises(ValueError):
        GeminiTextGenerator("", "gemini-2.5-flash")
