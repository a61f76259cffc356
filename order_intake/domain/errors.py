class OrderRejected(Exception):
    """A request the service refuses, with the reason shown to the caller."""

    def __init__(self, reason: str, status_code: int = 400):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class StoreError(Exception):
    """A collaborator (data store or verification service) could not be reached or failed."""
