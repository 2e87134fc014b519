"""Server G: checks green passes for app users and relays report changes."""

from __future__ import annotations

import datetime
import functools
import socket
import sys

from .protocol import (
    CT_ACK,
    ID_SIZE,
    MEX_SIZE,
    REPORT_INVALID,
    REPORT_VALID,
    SERVER_G_PORT,
    WELCOME_SIZE,
    Date,
    GreenPass,
    ReportPackage,
    decode_text,
    encode_text,
    recv_exact,
    send_all,
)
from .vaccination_center import (
    _DEFAULT_SERVER_V,
    _serve_forever,
    _server_main,
    create_start_date,
)

_ROLE_CLIENT_S = b"0"
_ROLE_CLIENT_T = b"1"
_TO_SERVER_V = b"0"
_OP_EDIT_REPORT = b"0"
_OP_FETCH = b"1"
_EDIT_MISSING = "1"

_WELCOME = "[Le diamo il benvenuto nell'App CampaniaGP]\n"
_ID_RECEIVED = "L'identificativo della tessera sanitaria è corretto... \n"
_MISSING_MESSAGE = "Ops,l'id non esiste! \n"
_SUCCESS_MESSAGE = "L'operazione ha avuto successo!"
_VERDICTS = {
    REPORT_VALID: "Il GreenPass è valido! \n",
    REPORT_INVALID: "Il GreenPass non è valido! \n",
}


def create_today_date(today: datetime.date | None = None) -> Date:
    """Return today's date as a Date."""
    return create_start_date(today)


def is_green_pass_valid(gp: GreenPass, today: Date) -> bool:
    """Tell whether a pass holds on ``today``.

    A pass reported invalid never holds; otherwise it expires only once the
    calendar year has moved past its expiry year.
    """
    return gp.report != REPORT_INVALID and today.year <= gp.end_date.year


def _ask_server_v(
    server_v_address: tuple[str, int], operation: bytes, payload: bytes
) -> socket.socket:
    """Open a Server V connection, send one request and return the socket."""
    sock = socket.create_connection(server_v_address)
    send_all(sock, _TO_SERVER_V + operation + payload)
    return sock


def _read_code(sock: socket.socket) -> str:
    return recv_exact(sock, 1).decode("latin-1")


def check_id(
    card_id: str,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
    today: Date | None = None,
) -> str:
    """Ask Server V for a card's pass; return "1" valid, "0" not valid, else Server V's code."""
    with _ask_server_v(server_v_address, _OP_FETCH, encode_text(card_id, ID_SIZE)) as sock:
        report = _read_code(sock)
        if report != REPORT_VALID:
            return report
        gp = GreenPass.unpack(recv_exact(sock, GreenPass.SIZE))
    if today is None:
        today = create_today_date()
    return REPORT_VALID if is_green_pass_valid(gp, today) else REPORT_INVALID


def dispatch_report(
    package: ReportPackage,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
) -> str:
    """Forward a report change to Server V; return "0" on success, "1" if the card is unknown."""
    with _ask_server_v(server_v_address, _OP_EDIT_REPORT, package.pack()) as sock:
        return _read_code(sock)


def handle_client_s(
    conn: socket.socket,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
) -> str:
    """Check the pass of the card a ClientS sends; return the verdict sent back."""
    send_all(conn, encode_text(_WELCOME, WELCOME_SIZE))
    card_id = decode_text(recv_exact(conn, ID_SIZE))
    send_all(conn, encode_text(_ID_RECEIVED, MEX_SIZE))

    message = _VERDICTS.get(check_id(card_id, server_v_address), _MISSING_MESSAGE)
    send_all(conn, encode_text(message, CT_ACK))
    return message


def handle_client_t(
    conn: socket.socket,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
) -> str:
    """Relay a ClientT report change to Server V; return the outcome sent back."""
    package = ReportPackage.unpack(recv_exact(conn, ReportPackage.SIZE))
    report = dispatch_report(package, server_v_address)
    message = _MISSING_MESSAGE if report == _EDIT_MISSING else _SUCCESS_MESSAGE
    send_all(conn, encode_text(message, CT_ACK))
    return message


def handle_connection(
    conn: socket.socket,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
) -> str | None:
    """Serve one client connection; return the final message sent, if any."""
    handlers = {_ROLE_CLIENT_T: handle_client_t, _ROLE_CLIENT_S: handle_client_s}
    with conn:
        handler = handlers.get(recv_exact(conn, 1))
        if handler is None:
            print("Client NOT FOUND")
            return None
        return handler(conn, server_v_address)


def serve(
    host: str = "",
    port: int = SERVER_G_PORT,
    server_v_address: tuple[str, int] = _DEFAULT_SERVER_V,
) -> None:
    """Accept clients forever, handling each in its own thread."""
    _serve_forever(
        host,
        port,
        "Attendendo GreenPass da scansionare...",
        functools.partial(handle_connection, server_v_address=server_v_address),
    )


def main(argv: list[str] | None = None) -> int:
    return _server_main("Server G", SERVER_G_PORT, serve, argv)


if __name__ == "__main__":
    sys.exit(main())