"""Политика повторных попыток для вызовов внешнего сервиса генерации."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_fixed

from app.domains.generation.exceptions import GenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_any_error(error: BaseException) -> bool:
    return isinstance(error, Exception)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    wait_s = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Generation attempt {retry_state.attempt_number} failed: {error}; retrying in {wait_s}s"
    )


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    backoff: float = 2.0
    retryable: Callable[[BaseException], bool] = retry_any_error
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def _should_retry(self, error: BaseException) -> bool:
        # GenerationError уже окончательный результат
        return not isinstance(error, GenerationError) and self.retryable(error)

    def build_retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception(self._should_retry),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.backoff),
            sleep=self.sleep,
            before_sleep=_log_before_sleep,
            reraise=True,
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Выполнение операции; после последней неудачи поднимается GenerationError"""
        attempts = 0
        try:
            async for attempt in self.build_retrying():
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    return await operation()
        except GenerationError:
            raise
        except Exception as exc:
            logger.warning(f"Generation failed after {attempts}/{self.max_attempts} attempt(s): {exc}")
            raise GenerationError(str(exc), attempts=attempts) from exc

        raise AssertionError("unreachable")
