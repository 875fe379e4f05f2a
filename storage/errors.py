# storage/errors.py


class StorageError(Exception):
    """Base class for every error raised by a storage backend."""


class NotFoundError(StorageError):
    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} with id {key} not found")


class ConflictError(StorageError):
    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"{field.capitalize()} already exists")


class ValidationError(StorageError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class BackendError(StorageError):
    """The persistent backend failed; never to be read as 'not found'."""
