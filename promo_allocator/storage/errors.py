class StorageError(Exception):
    pass


class StorageUnavailableError(StorageError):
    pass
