"""Server V: keeps green passes on disk and answers the centers and Server G."""

from __future__ import annotations

import argparse
import dataclasses
import os
import socket
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX platforms
    fcntl = None

from .protocol import (
    ID_SIZE,
    LISTEN_BACKLOG,
    REPORT_VALID,
    SERVER_V_PORT,
    GreenPass,
    ProtocolError,
    ReportPackage,
    decode_text,
    install_interrupt_handler,
    recv_exact,
    send_all,
)

_ROLE_SERVER_G = b"0"
_ROLE_CENTER = b"1"
_OP_EDIT_REPORT = b"0"
_OP_FETCH = b"1"
_FETCH_FOUND = b"1"
_FETCH_MISSING = b"2"
_EDIT_DONE = b"0"
_EDIT_MISSING = b"1"
_MISSING_MESSAGE = (
    "L'identificativo della tessera sanitaria non esiste,si prega di riprovare..."
)


@contextmanager
def _exclusive(file: BinaryIO) -> Iterator[None]:
    """Hold an exclusive advisory lock on an open file where the OS offers one."""
    if fcntl is None:
        yield
        return
    fcntl.flock(file.fileno(), fcntl.LOCK_EX)
    try:
        yield
    finally:
        fcntl.flock(file.fileno(), fcntl.LOCK_UN)


class GreenPassStore:
    """Green passes kept one file per health card id inside a directory."""

    def __init__(self, directory: str | os.PathLike[str] = ".") -> None:
        self.directory = Path(directory)

    def _path(self, card_id: str) -> Path:
        if (
            not card_id
            or card_id in {".", ".."}
            or any(sep in card_id for sep in ("/", "\\", "\0"))
        ):
            raise ValueError(f"invalid health card id: {card_id!r}")
        return self.directory / card_id

    def save(self, gp: GreenPass) -> None:
        """Write a green pass, replacing any earlier one for the same card."""
        data = gp.pack()
        with open(self._path(gp.card_id), "wb") as file, _exclusive(file):
            file.write(data)

    def load(self, card_id: str) -> GreenPass:
        """Return the green pass of a card; raise KeyError if there is none."""
        try:
            file = open(self._path(card_id), "rb")
        except FileNotFoundError:
            raise KeyError(card_id) from None
        with file, _exclusive(file):
            data = file.read(GreenPass.SIZE)
        return GreenPass.unpack(data)

    def set_report(self, card_id: str, report: str) -> GreenPass:
        """Change the report of a stored green pass and return the updated pass."""
        try:
            file = open(self._path(card_id), "r+b")
        except FileNotFoundError:
            raise KeyError(card_id) from None
        with file, _exclusive(file):
            current = GreenPass.unpack(file.read(GreenPass.SIZE))
            updated = dataclasses.replace(current, report=report)
            data = updated.pack()
            file.seek(0)
            file.write(data)
        return updated


def _register(conn: socket.socket, store: GreenPassStore) -> None:
    gp = GreenPass.unpack(recv_exact(conn, GreenPass.SIZE))
    store.save(dataclasses.replace(gp, report=REPORT_VALID))


def _fetch(conn: socket.socket, store: GreenPassStore) -> None:
    card_id = decode_text(recv_exact(conn, ID_SIZE))
    try:
        gp = store.load(card_id)
    except (KeyError, ValueError):
        print(_MISSING_MESSAGE)
        send_all(conn, _FETCH_MISSING)
        return
    send_all(conn, _FETCH_FOUND + gp.pack())


def _edit_report(conn: socket.socket, store: GreenPassStore) -> None:
    package = ReportPackage.unpack(recv_exact(conn, ReportPackage.SIZE))
    try:
        store.set_report(package.card_id, package.report)
    except (KeyError, ValueError):
        print(_MISSING_MESSAGE)
        reply = _EDIT_MISSING
    else:
        reply = _EDIT_DONE
    send_all(conn, reply)


def _serve_server_g(conn: socket.socket, store: GreenPassStore) -> None:
    operation = recv_exact(conn, 1)
    if operation == _OP_EDIT_REPORT:
        _edit_report(conn, store)
    elif operation == _OP_FETCH:
        _fetch(conn, store)
    else:
        print("bit_communication NOT FOUND\n")


def handle_connection(conn: socket.socket, store: GreenPassStore) -> None:
    """Serve one connection from a vaccination center or from Server G."""
    with conn:
        role = recv_exact(conn, 1)
        if role == _ROLE_CENTER:
            _register(conn, store)
        elif role == _ROLE_SERVER_G:
            _serve_server_g(conn, store)
        else:
            print("Client NOT FOUND\n")


def _handle(conn: socket.socket, store: GreenPassStore) -> None:
    try:
        handle_connection(conn, store)
    except (ProtocolError, OSError) as exc:
        print(f"errore: {exc}", file=sys.stderr)


def serve(
    host: str = "",
    port: int = SERVER_V_PORT,
    directory: str | os.PathLike[str] = ".",
) -> None:
    """Accept connections forever, handling each in its own thread."""
    store = GreenPassStore(directory)
    with socket.create_server((host, port), backlog=LISTEN_BACKLOG) as listener:
        while True:
            print("In attesa di nuove connesioni...\n", flush=True)
            conn, _ = listener.accept()
            threading.Thread(target=_handle, args=(conn, store), daemon=True).start()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Server V")
    parser.add_argument("--host", default="")
    parser.add_argument("--port", type=int, default=SERVER_V_PORT)
    parser.add_argument("--directory", default=".")
    args = parser.parse_args(argv)

    install_interrupt_handler()
    try:
        serve(args.host, args.port, args.directory)
    except OSError as exc:
        print(f"errore: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())