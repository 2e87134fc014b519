"""Vaccination center: registers users and issues green passes to Server V."""

from __future__ import annotations

import argparse
import datetime
import functools
import random
import socket
import sys
import threading
from typing import Callable

from .protocol import (
    CENTER_PORT,
    LISTEN_BACKLOG,
    LOCALHOST,
    MAX_SIZE,
    MEX_SIZE,
    REPORT_VALID,
    SERVER_V_PORT,
    Date,
    GreenPass,
    ProtocolError,
    VaxPackage,
    encode_text,
    install_interrupt_handler,
    recv_exact,
    send_all,
)
from .user import _WELCOME_LENGTH

HUB_NAMES = (
    "Afragola",
    "Napoli",
    "Casoria",
    "Ischia",
    "Frattamaggiore",
    "Pomigliano",
    "Caserta",
    "Salerno",
    "Barra",
    "Benevento",
)

VALIDITY_MONTHS = 6
_ROLE_VACCINATION_CENTER = b"1"
_ACK = "I suoi dati sono stati correttamente registrati!\n"
_DEFAULT_SERVER_V = (LOCALHOST, SERVER_V_PORT)


def create_start_date(today: datetime.date | None = None) -> Date:
    """Return the issue date of a green pass: today."""
    today = today or datetime.date.today()
    return Date(today.day, today.month, today.year)


def create_end_date(today: datetime.date | None = None) -> Date:
    """Return the expiry date: six months after today, same day of the month."""
    start = create_start_date(today)
    year, month = divmod(start.month - 1 + VALIDITY_MONTHS, 12)
    return Date(start.day, month + 1, start.year + year)


def dispatch_green_pass(
    gp: GreenPass, host: str = LOCALHOST, port: int = SERVER_V_PORT
) -> None:
    """Send a freshly issued green pass to Server V."""
    with socket.create_connection((host, port)) as sock:
        send_all(sock, _ROLE_VACCINATION_CENTER + gp.pack())


def answer_user(
    conn: socket.socket,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
) -> GreenPass:
    """Welcome a user, register their details and forward the new green pass."""
    with conn:
        welcome = f"[Benvenuto al centro vaccinale di {random.choice(HUB_NAMES)}]\n\n"
        send_all(conn, _WELCOME_LENGTH.pack(MAX_SIZE) + encode_text(welcome, MAX_SIZE))

        package = VaxPackage.unpack(recv_exact(conn, VaxPackage.SIZE))
        print(
            "\nDati ricevuti",
            f"Nome: {package.name}",
            f"Cognome: {package.surname}",
            f"Identificativo Tessera Sanitaria: {package.card_id}\n",
            sep="\n",
        )

        send_all(conn, encode_text(_ACK, MEX_SIZE))

        gp = GreenPass(
            card_id=package.card_id,
            start_date=create_start_date(),
            end_date=create_end_date(),
            report=REPORT_VALID,
        )
        print(f"Il GreenPass è stato emesso in data : {gp.start_date}")
        print(f"Il GreenPass scadrà in data : {gp.end_date}")

    dispatch_green_pass(gp, *server_v_address)
    return gp


def _guarded(handler: Callable[[socket.socket], object], conn: socket.socket) -> None:
    try:
        handler(conn)
    except (ProtocolError, OSError) as exc:
        print(f"errore: {exc}", file=sys.stderr)


def _serve_forever(
    host: str, port: int, banner: str, handler: Callable[[socket.socket], object]
) -> None:
    """Accept connections forever, giving each to ``handler`` in its own thread."""
    with socket.create_server((host, port), backlog=LISTEN_BACKLOG) as listener:
        while True:
            print(banner, flush=True)
            conn, _ = listener.accept()
            threading.Thread(target=_guarded, args=(handler, conn), daemon=True).start()


def _server_main(
    description: str,
    default_port: int,
    serve_func: Callable[[str, int, tuple[str, int]], None],
    argv: list[str] | None,
) -> int:
    """Parse the common server options and run ``serve_func`` until interrupted."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--host", default="")
    parser.add_argument("--port", type=int, default=default_port)
    parser.add_argument("--server-v-host", default=LOCALHOST)
    parser.add_argument("--server-v-port", type=int, default=SERVER_V_PORT)
    args = parser.parse_args(argv)

    install_interrupt_handler()
    try:
        serve_func(args.host, args.port, (args.server_v_host, args.server_v_port))
    except OSError as exc:
        print(f"errore: {exc}", file=sys.stderr)
        return 1
    return 0


def serve(
    host: str = "",
    port: int = CENTER_PORT,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
) -> None:
    """Accept users forever, handling each in its own thread."""
    _serve_forever(
        host,
        port,
        "In attesa di nuove richieste di vaccinazione...",
        functools.partial(answer_user, server_v_address=server_v_address),
    )


def main(argv: list[str] | None = None) -> int:
    return _server_main("Centro vaccinale", CENTER_PORT, serve, argv)


if __name__ == "__main__":
    sys.exit(main())