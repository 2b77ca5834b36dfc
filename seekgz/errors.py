class SeekGzError(Exception):
    """Base class for seekgz-specific errors."""


# Index/trailer related
class InvalidTrailer(SeekGzError):
    pass


class MalformedIndex(SeekGzError):
    pass


# Per-call
class BlockNotFound(SeekGzError, LookupError):
    pass


class WriterClosed(SeekGzError, ValueError):
    pass
