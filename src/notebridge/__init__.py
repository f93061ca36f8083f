"""
Notebridge

Relays notes from a Misskey streaming channel to a Bouyomi-chan text-to-speech relay.
"""

__version__ = "0.1.0"
