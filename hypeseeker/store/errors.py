"""Domain exceptions for the post store.

Infrastructure errors (the database cannot be opened or used) are kept
apart from domain errors (an unknown channel was asked for).
"""


class StateStoreError(Exception):
    """Base exception for all post store errors."""


class StoreConnectionError(StateStoreError):
    """Raised when the database cannot be opened or is not connected."""

    def __init__(self, message: str = "Database not connected") -> None:
        super().__init__(message)


class UnknownChannelError(StateStoreError):
    """Raised when a channel has no sent-marker column.

    Channels must be registered with ``PostStore.register_channels`` before
    their markers can be queried or set.
    """

    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(f"Channel not registered: {channel}")


class InvalidChannelNameError(StateStoreError):
    """Raised when a channel name cannot be used as a column suffix."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(
            f"Invalid channel name {channel!r}: use lowercase letters, digits, underscores"
        )


class MigrationError(StateStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
