import socket
import sys

import main


def test_pick_port_prefers_requested_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        free = s.getsockname()[1]
    assert main._pick_port("127.0.0.1", free) == free


def test_pick_port_falls_back_when_busy():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        taken = busy.getsockname()[1]
        port = main._pick_port("127.0.0.1", taken)
    assert port != taken
    assert port > 0


def test_parse_args(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["main.py", "--test", "2", "--no-browser"])
    args = main._parse_args()
    assert args.test == "2"
    assert args.no_browser is True

    monkeypatch.setattr(sys, "argv", ["main.py"])
    args = main._parse_args()
    assert args.test == "1"
    assert args.no_browser is False
