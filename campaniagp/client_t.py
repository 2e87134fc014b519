"""ClientT: asks Server G to restore or suspend the green pass of a health card."""

from __future__ import annotations

import socket
import sys
import time
from typing import Callable, TextIO

from .protocol import (
    CT_ACK,
    LOCALHOST,
    REPORT_INVALID,
    REPORT_VALID,
    SERVER_G_PORT,
    ReportPackage,
    decode_text,
    recv_exact,
    send_all,
)
from .user import _client_main, read_card_id

_ROLE_CLIENT_T = b"1"
LOADING_DELAY = 3.0
_REQUEST_NOTICES = {
    REPORT_VALID: "\nInviando la richiesta di ripristino del GreenPass...",
    REPORT_INVALID: "\nInviando la richiesta di sospensione del GreenPass...",
}


def read_report_choice(
    input_func: Callable[[str], str] = input, output: TextIO | None = None
) -> str:
    """Ask until the user picks "0" (not valid) or "1" (valid)."""
    output = output or sys.stdout
    while True:
        print("Inserire: 0 [GreenPass Non Valido]\nInserire 1 [GreenPass Valido]", file=output)
        choice = input_func("[INSERISCI 0 o 1]: ").strip()
        if choice in _REQUEST_NOTICES:
            return choice
        print("Errore: valore inserito non valido,si prega di ritentare...\n", file=output)


def run(
    host: str = LOCALHOST,
    port: int = SERVER_G_PORT,
    input_func: Callable[[str], str] = input,
    output: TextIO | None = None,
    delay: float = LOADING_DELAY,
) -> str:
    """Send one report change to Server G; return the outcome message."""
    output = output or sys.stdout
    with socket.create_connection((host, port)) as sock:
        send_all(sock, _ROLE_CLIENT_T)
        print("[Campania GreenPass]\n", file=output)

        card_id = read_card_id(input_func, output)
        report = read_report_choice(input_func, output)
        print(_REQUEST_NOTICES[report], file=output)

        send_all(sock, ReportPackage(card_id, report).pack())
        outcome = decode_text(recv_exact(sock, CT_ACK))

    time.sleep(delay)
    print(outcome, file=output)
    return outcome


def main(argv: list[str] | None = None) -> int:
    return _client_main(run, "Campania GreenPass", SERVER_G_PORT, argv)


if __name__ == "__main__":
    sys.exit(main())