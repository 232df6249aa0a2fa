class NotFoundError(ValueError):
    """Raised when an id does not resolve to a row owned by the company."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class AccessDeniedError(Exception):
    """The company's plan does not allow the action."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
