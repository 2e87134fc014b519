"""User client: sends personal details to a vaccination center."""

from __future__ import annotations

import argparse
import socket
import struct
import sys
from typing import Callable, TextIO

from .protocol import (
    CENTER_PORT,
    ID_SIZE,
    LOCALHOST,
    MAX_SIZE,
    MEX_SIZE,
    ProtocolError,
    VaxPackage,
    decode_text,
    recv_exact,
    send_all,
)

_WELCOME_LENGTH = struct.Struct("<i")
_CARD_PROMPT = "Inserisca l'identificativo della tessera sanitaria(MAX 10 caratteri): "
_CARD_ERROR = (
    "Il numero di caratteri della tessera sanitaria è errato,"
    "si prega di inserire esattamente 10 cifre!\n"
)


def read_card_id(
    input_func: Callable[[str], str] = input, output: TextIO | None = None
) -> str:
    """Ask until the user enters a health card id of exactly ten bytes."""
    output = output or sys.stdout
    while True:
        card_id = input_func(_CARD_PROMPT)
        if len(card_id.encode("utf-8")) == ID_SIZE - 1:
            return card_id
        print(_CARD_ERROR, file=output)


def create_package(
    input_func: Callable[[str], str] = input, output: TextIO | None = None
) -> VaxPackage:
    """Ask for name, surname and card id and bundle them for the center."""
    name = input_func("Nome Utente: ")
    surname = input_func("Cognome Utente: ")
    card_id = read_card_id(input_func, output)
    return VaxPackage(name=name, surname=surname, card_id=card_id)


def run(
    host: str,
    port: int = CENTER_PORT,
    input_func: Callable[[str], str] = input,
    output: TextIO | None = None,
) -> str:
    """Talk to a vaccination center once; return its acknowledgement."""
    output = output or sys.stdout
    with socket.create_connection((host, port)) as sock:
        (welcome_size,) = _WELCOME_LENGTH.unpack(recv_exact(sock, _WELCOME_LENGTH.size))
        if not 0 <= welcome_size <= MAX_SIZE:
            raise ProtocolError(f"welcome message of {welcome_size} bytes is out of range")
        print(decode_text(recv_exact(sock, welcome_size)), file=output)

        package = create_package(input_func, output)
        send_all(sock, package.pack())

        ack = decode_text(recv_exact(sock, MEX_SIZE))
        print(f"{ack}\n", file=output)
        return ack


def _client_main(
    run_func: Callable[[str, int], object],
    description: str,
    default_port: int,
    argv: list[str] | None,
    host_help: str | None = None,
) -> int:
    """Parse host and port, run one client session and map failures to exit code 1."""
    parser = argparse.ArgumentParser(description=description)
    if host_help is None:
        parser.add_argument("--host", default=LOCALHOST)
    else:
        parser.add_argument("host", help=host_help)
    parser.add_argument("--port", type=int, default=default_port)
    args = parser.parse_args(argv)

    try:
        run_func(args.host, args.port)
    except EOFError:
        print("errore: input terminato", file=sys.stderr)
        return 1
    except (ProtocolError, OSError) as exc:
        print(f"errore: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    return _client_main(
        run,
        "Utente del centro vaccinale",
        CENTER_PORT,
        argv,
        host_help="nome dell'host del centro vaccinale",
    )


if __name__ == "__main__":
    sys.exit(main())