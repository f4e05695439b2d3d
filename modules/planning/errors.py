"""Typed failures raised by the planning operations.

The HTTP layer maps them through ``http_status``; the CLI prints the message.
"""


class PlanningError(Exception):
    """Base class for all planning failures."""

    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(PlanningError):
    """Referenced contract or intervention does not exist."""

    http_status = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidState(PlanningError):
    """Operation forbidden by the current contract or intervention status."""

    http_status = 409


class ValidationError(PlanningError):
    """Missing or malformed input."""

    http_status = 400
