"""Errors raised while turning API operations into screens."""


class ScreenGenerationError(ValueError):
    """An operation is structurally unusable (missing method, path or operationId).

    Raised instead of skipping the operation so a missing screen never
    vanishes silently.
    """

    def __init__(self, message: str, operation_id: str | None = None, path: str | None = None):
        self.operation_id = operation_id
        self.path = path
        where = operation_id or path
        super().__init__(f"{message} ({where})" if where else message)
