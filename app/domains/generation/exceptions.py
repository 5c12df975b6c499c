class GenerationError(Exception):
    """Окончательный отказ сервиса генерации после исчерпания попыток"""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.message = message
        self.attempts = attempts
