from typing import Iterable, Optional


class ApbdError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApbdError):
    """Field rule violations; ``errors`` keeps them in check order."""

    kind = "validation"

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__(", ".join(self.errors))


class StoreError(ApbdError):
    """Network, auth or query failure talking to the record store."""

    kind = "store"

    def __init__(self, message: str, committed: Optional[int] = None):
        super().__init__(message)
        self.committed = committed


class RenderError(ApbdError):
    kind = "render"
