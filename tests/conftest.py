import socket
import threading

import pytest


class EchoServer:
    """Accepts TCP connections on localhost and counts them."""

    def __init__(self):
        self.sock = socket.create_server(("127.0.0.1", 0))
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self.accepted = 0
        self.received = bytearray()
        self._clients = []
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        while not self._stop.is_set():
            try:
                client, _ = self.sock.accept()
            except socket.timeout:
                self._drain()
                continue
            except OSError:
                break
            client.setblocking(False)
            with self._lock:
                self.accepted += 1
                self._clients.append(client)
            self._drain()

    def _drain(self):
        with self._lock:
            for client in self._clients:
                try:
                    data = client.recv(4096)
                except (BlockingIOError, OSError):
                    continue
                self.received.extend(data)

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        self._thread.join(timeout=1)
        with self._lock:
            for client in self._clients:
                client.close()
        self.sock.close()


@pytest.fixture
def echo_server():
    server = EchoServer().start()
    yield server
    server.stop()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
