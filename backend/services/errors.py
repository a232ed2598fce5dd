"""Exceptions raised by the docket and lifecycle services."""


class InvalidTransition(ValueError):
    """A status change that the workflow does not allow."""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class UnknownField(ValueError):
    """An update named a field that cannot be written."""
