"""Exception types raised by the people counter."""


class PeopleCounterError(Exception):
    """Base class for all people counter errors."""


class InitializationError(PeopleCounterError):
    """Startup failed; the pipeline never begins receiving frames."""


class ModelLoadError(InitializationError):
    """The detection model or its labels could not be loaded."""


class CameraError(InitializationError):
    """The camera could not be opened."""


class StorageError(PeopleCounterError):
    """The event database could not be initialized or written."""
