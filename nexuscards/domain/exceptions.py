"""Exceptions raised by nexuscards domain services."""


class NexusError(RuntimeError):
    """Base class for domain exceptions."""


class InvalidRoll(NexusError):
    """Raised when a manually entered dice total is rejected."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Dice total must be an integer between 2 and 12, got {value!r}")
        self.value = value


class ActionNotPermitted(NexusError):
    """Raised when an action is refused by its gating check."""


class SessionBusy(ActionNotPermitted):
    """Raised when another roll or flee attempt is still in flight."""


class InsufficientResources(ActionNotPermitted):
    """Raised when a blueprint's resource requirements are not met."""


class InsufficientFuel(ActionNotPermitted):
    """Raised when a player cannot pay the travel fuel cost."""

    def __init__(self, available: int, required: int) -> None:
        super().__init__(f"Travel needs {required} fuel, player has {available}")
        self.available = available
        self.required = required


class InsufficientGold(ActionNotPermitted):
    """Raised when a player cannot pay a merchant price."""

    def __init__(self, available: int, required: int) -> None:
        super().__init__(f"Purchase needs {required} gold, player has {available}")
        self.available = available
        self.required = required


class PlanetComplete(ActionNotPermitted):
    """Raised when travelling to a planet whose phases are exhausted."""


class TradeNotFound(NexusError):
    """Raised when a trade session does not exist (cancelled or executed)."""


class StaleRecord(NexusError):
    """Raised when a player record changed since it was fetched."""

    def __init__(self, player_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Player {player_id} record is stale: expected version {expected}, found {actual}"
        )
        self.player_id = player_id
        self.expected = expected
        self.actual = actual
