# --- Service layer exception classes ---

class ServiceError(Exception):
    """General exception class for the service layer."""
    pass

class TransientIOError(ServiceError):
    """A storage call failed; nothing was changed and the operation can be retried."""
    pass
