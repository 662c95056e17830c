import socket
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class TCPConnectionFactory:
    """Dial one TCP stream socket per call, for use as a pool factory."""

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: Optional[float] = None,
        source_address: Optional[tuple] = None,
    ):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.source_address = source_address

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def __call__(self) -> socket.socket:
        sock = socket.create_connection(
            (self.host, self.port),
            timeout=self.connect_timeout,
            source_address=self.source_address,
        )
        logger.debug("tcp_connected", address=self.address, local=sock.getsockname())
        return sock

    def __repr__(self):
        return f"TCPConnectionFactory({self.address})"
