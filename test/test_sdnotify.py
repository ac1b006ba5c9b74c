import socket

import pytest

from dynip.util import sdnotify


@pytest.fixture
def notify_socket(tmp_path, monkeypatch, mocker):
    """Fixture providing a datagram socket that receives notify messages"""
    path = str(tmp_path / 'notify')
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    sock.bind(path)
    sock.settimeout(1)
    monkeypatch.setenv('NOTIFY_SOCKET', path)
    mocker.patch('dynip.util.sdnotify.os.path.isdir', return_value=True)
    yield sock
    sock.close()


def test_args_to_bytes():
    assert sdnotify._args_to_bytes(READY=1, STATUS="ok") == \
        b'READY=1\nSTATUS=ok\n'


def test_ready(notify_socket):
    sdnotify.ready()
    assert notify_socket.recv(1024) == b'READY=1\n'


def test_stopping(notify_socket):
    sdnotify.stopping()
    assert notify_socket.recv(1024) == b'STOPPING=1\n'


def test_no_socket(monkeypatch, mocker):
    monkeypatch.delenv('NOTIFY_SOCKET', raising=False)
    mocker.patch('dynip.util.sdnotify.os.path.isdir', return_value=True)
    send = mocker.patch('socket.socket')
    sdnotify.ready()
    send.assert_not_called()


def test_no_systemd(monkeypatch, mocker):
    monkeypatch.setenv('NOTIFY_SOCKET', '/nonexistent')
    mocker.patch('dynip.util.sdnotify.os.path.isdir', return_value=False)
    send = mocker.patch('socket.socket')
    sdnotify.stopping()
    send.assert_not_called()
