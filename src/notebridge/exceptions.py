"""Bridge error taxonomy."""


class BridgeError(Exception):
    """Base class for bridge errors; startup errors are fatal, send errors are recovered."""


class ConfigError(BridgeError):
    """Required configuration is missing or empty."""


class StreamConnectionError(BridgeError):
    """A WebSocket endpoint could not be reached."""


class SubscribeError(BridgeError):
    """The channel subscription handshake could not be sent."""


class RelaySendError(BridgeError):
    """A synthesis command could not be written to the relay."""


__all__ = [
    "BridgeError",
    "ConfigError",
    "StreamConnectionError",
    "SubscribeError",
    "RelaySendError",
]
