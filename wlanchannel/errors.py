"""Exception hierarchy for the system channel."""


class SystemChannelError(Exception):
    """Base class for system channel exceptions."""


class ChannelConfigurationError(SystemChannelError, ValueError):
    """Raised when the node population or channel configuration is invalid."""


class NoChannelExistsError(SystemChannelError, LookupError):
    """Raised when no channel realization exists between two nodes."""

    def __init__(self, tx_id, rx_id):
        self.tx_id = tx_id
        self.rx_id = rx_id
        super().__init__(f"Channel does not exist between node #{tx_id} and #{rx_id}.")


class ChannelQueryError(SystemChannelError, ValueError):
    """Raised when a channel query is malformed or refers to unknown nodes."""
