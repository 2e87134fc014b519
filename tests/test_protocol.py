import signal
import socket
from unittest import mock

import pytest

from campaniagp.protocol import (
    ID_SIZE,
    MAX_SIZE,
    Date,
    GreenPass,
    ProtocolError,
    ReportPackage,
    VaxPackage,
    decode_text,
    encode_text,
    install_interrupt_handler,
    recv_exact,
    send_all,
)


def test_encode_text_pads_with_zeros():
    field = encode_text("ABCDEFGHIJ", ID_SIZE)
    assert field == b"ABCDEFGHIJ\x00"


def test_encode_text_rejects_text_without_room_for_terminator():
    with pytest.raises(ProtocolError):
        encode_text("ABCDEFGHIJK", ID_SIZE)


def test_decode_text_stops_at_terminator():
    assert decode_text(b"hello\x00garbage") == "hello"


def test_encode_decode_round_trip_unicode():
    assert decode_text(encode_text("Niccolò", MAX_SIZE)) == "Niccolò"


def test_date_round_trip():
    date = Date(15, 3, 2023)
    assert Date.unpack(date.pack()) == date
    assert len(date.pack()) == Date.SIZE


def test_date_str_format():
    assert str(Date(5, 3, 2023)) == "05:03:2023"


def test_date_unpack_wrong_length():
    with pytest.raises(ProtocolError):
        Date.unpack(b"\x00" * (Date.SIZE - 1))


def test_green_pass_round_trip_and_size():
    gp = GreenPass("ABCDEFGHIJ", Date(1, 2, 2023), Date(1, 8, 2023), "0")
    packed = gp.pack()
    assert len(packed) == 36
    assert GreenPass.unpack(packed) == gp


def test_green_pass_layout_starts_with_id_and_report():
    gp = GreenPass("ABCDEFGHIJ", Date(1, 2, 2023), Date(1, 8, 2023), "1")
    packed = gp.pack()
    assert packed[:ID_SIZE] == b"ABCDEFGHIJ\x00"
    assert packed[ID_SIZE:ID_SIZE + 1] == b"1"
    assert packed[ID_SIZE + 1:ID_SIZE + 1 + Date.SIZE] == Date(1, 2, 2023).pack()


def test_green_pass_default_report_is_valid():
    gp = GreenPass("ABCDEFGHIJ", Date(1, 2, 2023), Date(1, 8, 2023))
    assert gp.report == "1"


def test_green_pass_rejects_multi_char_report():
    gp = GreenPass("ABCDEFGHIJ", Date(1, 2, 2023), Date(1, 8, 2023), "10")
    with pytest.raises(ProtocolError):
        gp.pack()


def test_vax_package_round_trip_and_size():
    package = VaxPackage("Mario", "Rossi", "ABCDEFGHIJ")
    packed = package.pack()
    assert len(packed) == 2059
    assert VaxPackage.unpack(packed) == package


def test_vax_package_name_too_long():
    with pytest.raises(ProtocolError):
        VaxPackage("x" * MAX_SIZE, "Rossi", "ABCDEFGHIJ").pack()


def test_report_package_round_trip_and_size():
    package = ReportPackage("ABCDEFGHIJ", "0")
    packed = package.pack()
    assert len(packed) == 12
    assert ReportPackage.unpack(packed) == package


def test_report_package_unpack_wrong_length():
    with pytest.raises(ProtocolError):
        ReportPackage.unpack(b"short")


def test_recv_exact_collects_chunks():
    left, right = socket.socketpair()
    with left, right:
        send_all(left, b"abc")
        send_all(left, b"defg")
        assert recv_exact(right, 7) == b"abcdefg"


def test_recv_exact_raises_on_early_close():
    left, right = socket.socketpair()
    with right:
        send_all(left, b"abc")
        left.close()
        with pytest.raises(ProtocolError):
            recv_exact(right, 5)


def test_interrupt_handler_exits_cleanly(capsys):
    previous = install_interrupt_handler()
    try:
        handler = signal.getsignal(signal.SIGINT)
        with mock.patch("time.sleep") as fake_sleep:
            with pytest.raises(SystemExit) as excinfo:
                handler(signal.SIGINT, None)
        assert excinfo.value.code == 0
        fake_sleep.assert_called_once()
        out = capsys.readouterr().out
        assert "Uscita in corso..." in out
        assert "La ringraziamo per aver utilizzato il nostro servizio!" in out
    finally:
        signal.signal(signal.SIGINT, previous)