"""Exceptions shared by the stores and the workflow layer."""


class StoreError(Exception):
    """An underlying persistence failure."""


class AuthorizeError(Exception):
    """A privileged write was attempted outside an administrator or elevated context."""

    def __init__(self, operation: str):
        super().__init__(f"Not authorized to perform {operation}")
        self.operation = operation
