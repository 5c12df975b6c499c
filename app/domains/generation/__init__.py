from app.domains.generation.exceptions import GenerationError
from app.domains.generation.retry import RetryPolicy

__all__ = ["GenerationError", "RetryPolicy"]
