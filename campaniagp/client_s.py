"""ClientS: the app that asks Server G whether a health card's green pass is valid."""

from __future__ import annotations

import socket
import sys
import time
from typing import Callable, TextIO

from .protocol import (
    CS_ACK,
    ID_SIZE,
    LOCALHOST,
    MEX_SIZE,
    SERVER_G_PORT,
    WELCOME_SIZE,
    decode_text,
    encode_text,
    recv_exact,
    send_all,
)
from .user import _client_main, read_card_id

_ROLE_CLIENT_S = b"0"
VERIFY_DELAY = 3.0


def run(
    host: str = LOCALHOST,
    port: int = SERVER_G_PORT,
    input_func: Callable[[str], str] = input,
    output: TextIO | None = None,
    delay: float = VERIFY_DELAY,
) -> str:
    """Check one health card with Server G; return the verdict it sends back."""
    output = output or sys.stdout
    with socket.create_connection((host, port)) as sock:
        send_all(sock, _ROLE_CLIENT_S)
        print(f"{decode_text(recv_exact(sock, WELCOME_SIZE))}\n", file=output)

        send_all(sock, encode_text(read_card_id(input_func, output), ID_SIZE))

        ack = decode_text(recv_exact(sock, MEX_SIZE))
        print(f"\n{ack}\n\nConvalida in corso, attendere...\n", file=output)

        time.sleep(delay)

        verdict = decode_text(recv_exact(sock, CS_ACK))
        print(verdict, file=output)
        return verdict


def main(argv: list[str] | None = None) -> int:
    return _client_main(run, "App CampaniaGP", SERVER_G_PORT, argv)


if __name__ == "__main__":
    sys.exit(main())