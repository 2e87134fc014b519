"""Wire format, constants and socket helpers shared by the GreenPass services."""

from __future__ import annotations

import signal
import socket
import struct
import sys
import time
from dataclasses import dataclass
from typing import ClassVar

MAX_SIZE = 1024
ID_SIZE = 11
WELCOME_SIZE = 108
MEX_SIZE = 64
CS_ACK = 39
CT_ACK = 39

LOCALHOST = "127.0.0.1"
CENTER_PORT = 1035
SERVER_V_PORT = 1036
SERVER_G_PORT = 1037
LISTEN_BACKLOG = 1035

REPORT_VALID = "1"
REPORT_INVALID = "0"

_DATE_LAYOUT = struct.Struct("<3i")
_CERTIFICATE_LAYOUT = struct.Struct(f"<{ID_SIZE}sc3i3i")
_VAX_LAYOUT = struct.Struct(f"<{MAX_SIZE}s{MAX_SIZE}s{ID_SIZE}s")
_REPORT_LAYOUT = struct.Struct(f"<{ID_SIZE}sc")


class ProtocolError(Exception):
    """Raised when data on the wire or to be sent does not fit the format."""


def encode_text(text: str, size: int) -> bytes:
    """Encode text as a NUL-terminated, zero-padded field of ``size`` bytes."""
    raw = text.encode("utf-8")
    if len(raw) >= size:
        raise ProtocolError(f"text of {len(raw)} bytes does not fit a {size}-byte field")
    return raw.ljust(size, b"\0")


def decode_text(data: bytes) -> str:
    """Decode a NUL-terminated field, ignoring everything after the terminator."""
    return data.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _encode_flag(flag: str) -> bytes:
    try:
        raw = flag.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ProtocolError(f"flag {flag!r} is not a single ASCII character") from exc
    if len(raw) != 1:
        raise ProtocolError(f"flag {flag!r} is not a single ASCII character")
    return raw


def _unpack(layout: struct.Struct, data: bytes, what: str) -> tuple:
    if len(data) != layout.size:
        raise ProtocolError(f"{what} needs {layout.size} bytes, got {len(data)}")
    return layout.unpack(data)


def _pack(layout: struct.Struct, what: str, *values) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as exc:
        raise ProtocolError(f"cannot encode {what}: {exc}") from exc


@dataclass(frozen=True)
class Date:
    """A calendar date as day, month (1-12) and full year."""

    day: int
    month: int
    year: int

    SIZE: ClassVar[int] = _DATE_LAYOUT.size

    def pack(self) -> bytes:
        return _pack(_DATE_LAYOUT, "date", self.day, self.month, self.year)

    @classmethod
    def unpack(cls, data: bytes) -> Date:
        return cls(*_unpack(_DATE_LAYOUT, data, "date"))

    def __str__(self) -> str:
        return f"{self.day:02d}:{self.month:02d}:{self.year:02d}"


@dataclass(frozen=True)
class GreenPass:
    """A certificate bound to a health card, with its validity window and report."""

    card_id: str
    start_date: Date
    end_date: Date
    report: str = REPORT_VALID

    SIZE: ClassVar[int] = _CERTIFICATE_LAYOUT.size

    def pack(self) -> bytes:
        return _pack(
            _CERTIFICATE_LAYOUT,
            "green pass",
            encode_text(self.card_id, ID_SIZE),
            _encode_flag(self.report),
            self.start_date.day,
            self.start_date.month,
            self.start_date.year,
            self.end_date.day,
            self.end_date.month,
            self.end_date.year,
        )

    @classmethod
    def unpack(cls, data: bytes) -> GreenPass:
        card_id, report, *numbers = _unpack(_CERTIFICATE_LAYOUT, data, "green pass")
        return cls(
            card_id=decode_text(card_id),
            start_date=Date(*numbers[:3]),
            end_date=Date(*numbers[3:]),
            report=report.decode("latin-1"),
        )


@dataclass(frozen=True)
class VaxPackage:
    """Personal details a user hands to a vaccination center."""

    name: str
    surname: str
    card_id: str

    SIZE: ClassVar[int] = _VAX_LAYOUT.size

    def pack(self) -> bytes:
        return _pack(
            _VAX_LAYOUT,
            "vaccination request",
            encode_text(self.name, MAX_SIZE),
            encode_text(self.surname, MAX_SIZE),
            encode_text(self.card_id, ID_SIZE),
        )

    @classmethod
    def unpack(cls, data: bytes) -> VaxPackage:
        name, surname, card_id = _unpack(_VAX_LAYOUT, data, "vaccination request")
        return cls(decode_text(name), decode_text(surname), decode_text(card_id))


@dataclass(frozen=True)
class ReportPackage:
    """A request to mark a card's green pass as valid ("1") or not ("0")."""

    card_id: str
    report: str

    SIZE: ClassVar[int] = _REPORT_LAYOUT.size

    def pack(self) -> bytes:
        return _pack(
            _REPORT_LAYOUT,
            "report",
            encode_text(self.card_id, ID_SIZE),
            _encode_flag(self.report),
        )

    @classmethod
    def unpack(cls, data: bytes) -> ReportPackage:
        card_id, report = _unpack(_REPORT_LAYOUT, data, "report")
        return cls(decode_text(card_id), report.decode("latin-1"))


def recv_exact(sock: socket.socket, count: int) -> bytes:
    """Read exactly ``count`` bytes; raise ProtocolError if the peer closes early."""
    received = bytearray()
    while len(received) < count:
        chunk = sock.recv(count - len(received))
        if not chunk:
            raise ProtocolError(
                f"connection closed after {len(received)} of {count} bytes"
            )
        received += chunk
    return bytes(received)


def send_all(sock: socket.socket, data: bytes) -> None:
    """Write every byte of ``data`` to the socket."""
    sock.sendall(data)


def _on_interrupt(signum, frame) -> None:
    print("\nUscita in corso...", flush=True)
    time.sleep(3)
    print("La ringraziamo per aver utilizzato il nostro servizio!", flush=True)
    sys.exit(0)


def install_interrupt_handler():
    """Make Ctrl-C print a goodbye, wait briefly and exit cleanly.

    Returns the handler that was installed before.
    """
    return signal.signal(signal.SIGINT, _on_interrupt)