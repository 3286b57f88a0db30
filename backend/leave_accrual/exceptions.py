class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class LeaveStoreError(AppError):
    """Writing recomputed leave balances back to the store failed."""
