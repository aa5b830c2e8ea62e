class EnscribeError(Exception):
    """Base class for errors raised by the entry store and backup codec."""


class StoreIOError(EnscribeError):
    """The sqlite engine failed (disk, corruption, constraint violation)."""


class CodecError(EnscribeError, ValueError):
    """A backup document or stored column could not be decoded."""
