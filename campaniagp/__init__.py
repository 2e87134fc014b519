"""Green Pass issuing and verification over TCP: servers, clients and wire format."""

__version__ = "0.1.0"