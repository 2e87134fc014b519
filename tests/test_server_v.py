import socket

import pytest

from campaniagp.protocol import (
    ID_SIZE,
    Date,
    GreenPass,
    ProtocolError,
    ReportPackage,
    encode_text,
)
from campaniagp.server_v import GreenPassStore, handle_connection

CARD = "ABCDEFGHIJ"
FETCH = b"01" + encode_text(CARD, ID_SIZE)
EDIT_TO_INVALID = b"00" + ReportPackage(CARD, "0").pack()


def _pass(report="1", card_id=CARD):
    return GreenPass(card_id, Date(10, 3, 2023), Date(10, 9, 2023), report)


@pytest.fixture
def store(tmp_path):
    return GreenPassStore(tmp_path)


def _exchange(store, request):
    client, server = socket.socketpair()
    with client:
        client.sendall(request)
        client.shutdown(socket.SHUT_WR)
        handle_connection(server, store)
        return b"".join(iter(lambda: client.recv(4096), b""))


def _stored(store, card_id=CARD):
    try:
        return store.load(card_id)
    except KeyError:
        return None


def test_save_then_load_round_trips(store, tmp_path):
    gp = _pass(report="0")
    store.save(gp)
    assert store.load(CARD) == gp
    assert (tmp_path / CARD).read_bytes() == gp.pack()


@pytest.mark.parametrize("operation", ["load", "set_report"])
def test_missing_card_raises_key_error(store, operation):
    with pytest.raises(KeyError):
        if operation == "load":
            store.load(CARD)
        else:
            store.set_report(CARD, "0")


@pytest.mark.parametrize("card_id", ["../evil", "a/b", "", ".."])
def test_save_rejects_path_like_ids(store, card_id):
    with pytest.raises(ValueError):
        store.save(_pass(card_id=card_id))


def test_set_report_updates_store(store):
    store.save(_pass())
    updated = store.set_report(CARD, "0")
    assert updated == _pass(report="0")
    assert store.load(CARD) == updated


@pytest.mark.parametrize(
    "existing, request_bytes, reply, after",
    [
        (None, b"1" + _pass(report="0").pack(), b"", _pass(report="1")),
        (_pass(report="0"), FETCH, b"1" + _pass(report="0").pack(), _pass(report="0")),
        (None, FETCH, b"2", None),
        (_pass(), EDIT_TO_INVALID, b"0", _pass(report="0")),
        (None, EDIT_TO_INVALID, b"1", None),
    ],
    ids=["register", "fetch", "fetch-missing", "edit", "edit-missing"],
)
def test_connection_protocol(store, existing, request_bytes, reply, after):
    if existing is not None:
        store.save(existing)
    assert _exchange(store, request_bytes) == reply
    assert _stored(store) == after


@pytest.mark.parametrize(
    "request_bytes, message",
    [(b"7", "Client NOT FOUND"), (b"09", "bit_communication NOT FOUND")],
)
def test_unknown_codes_are_ignored(store, capsys, request_bytes, message):
    assert _exchange(store, request_bytes) == b""
    assert message in capsys.readouterr().out


def test_truncated_green_pass_raises_and_stores_nothing(store, tmp_path):
    with pytest.raises(ProtocolError):
        _exchange(store, b"1abc")
    assert list(tmp_path.iterdir()) == []
    assert _exchange(store, FETCH) == b"2"