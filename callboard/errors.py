"""Exception hierarchy shared by the store, the token layer and the web layer."""


class CallboardError(Exception):
    """Base class for all callboard errors."""


class StoreConfigError(CallboardError):
    """The sightings store cannot be configured; the process must not start."""


class NotFoundError(CallboardError):
    """A requested entity does not exist."""


class TokenNotFoundError(NotFoundError):
    def __init__(self, ref: int | str) -> None:
        super().__init__(f"Token {ref} not found")
        self.ref = ref


class ChannelNotFoundError(NotFoundError):
    def __init__(self, ref: int | str) -> None:
        super().__init__(f"Channel with id {ref} not found")
        self.ref = ref


class ChannelDerivedError(CallboardError):
    """Channels are computed from sightings and cannot be written directly."""
