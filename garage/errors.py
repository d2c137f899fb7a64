class GarageError(Exception):
    """Base class for invoice engine failures."""


class NotFoundError(GarageError):
    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class InvalidInputError(GarageError):
    """Rejected before any write."""


class PersistenceError(GarageError):
    """The atomic write could not complete and was rolled back."""


class ConcurrentModificationError(PersistenceError):
    def __init__(self, invoice_id: str, expected_revision: int) -> None:
        self.invoice_id = invoice_id
        self.expected_revision = expected_revision
        super().__init__(
            f"Invoice {invoice_id} was modified concurrently (expected revision {expected_revision})"
        )
