class AutoPilotError(Exception):
    """Base class for engine errors surfaced to callers."""


class PilotNotFoundError(AutoPilotError):
    def __init__(self, pilot_id: str):
        super().__init__(f"Pilot not found: {pilot_id}")
        self.pilot_id = pilot_id


class InvalidPilotStateError(AutoPilotError):
    """Raised when an operation is not allowed in the pilot's current status."""

    def __init__(self, pilot_id: str, status: str, message: str):
        super().__init__(message)
        self.pilot_id = pilot_id
        self.status = status


class InsufficientFundsError(AutoPilotError):
    def __init__(self, pilot_id: str, requested: float, available: float):
        super().__init__(f"Insufficient funds. Available: ${available:.2f}")
        self.pilot_id = pilot_id
        self.requested = requested
        self.available = available
