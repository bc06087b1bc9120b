class StoreError(ValueError):
    """Base class for user-visible store errors."""


class StoreValidationError(StoreError):
    pass


class StoreNotFoundError(StoreError):
    pass


class StoreConflictError(StoreError):
    pass


class StoreAuthenticationError(StoreError):
    pass
