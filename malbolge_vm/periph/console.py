"""
Malbolge VM - Console (byte I/O adapter)

The IN and OUT instructions move one byte at a time. The engine talks to
any object with this interface:

    read_byte()  -> int | None   (None at end of input)
    write_byte(b)
    flush()

Two implementations:
  StreamConsole  wraps host binary streams (stdin/stdout by default)
  BufferConsole  in-memory RX queue + TX buffer for tests and embedding

Bytes pass through untouched: no CR/LF translation in either direction.
"""

import sys
from collections import deque
from typing import BinaryIO, Optional


class ConsoleError(Exception):
    """The host stream failed (not the same thing as end of input)."""


class StreamConsole:
    """Console backed by host binary streams.

    Output is written through as it is produced. flush() is called by
    the engine when a run stops, so partial output survives a crash.
    """

    def __init__(self, stdin: Optional[BinaryIO] = None,
                 stdout: Optional[BinaryIO] = None):
        self._in = stdin if stdin is not None else sys.stdin.buffer
        self._out = stdout if stdout is not None else sys.stdout.buffer

    def read_byte(self) -> Optional[int]:
        try:
            data = self._in.read(1)
        except OSError as e:
            raise ConsoleError(f"input read failed: {e}") from e
        if not data:
            return None
        return data[0]

    def write_byte(self, value: int):
        try:
            self._out.write(bytes((value & 0xFF,)))
        except OSError as e:
            raise ConsoleError(f"output write failed: {e}") from e

    def flush(self):
        try:
            self._out.flush()
        except OSError as e:
            raise ConsoleError(f"output flush failed: {e}") from e


class BufferConsole:
    """In-memory console.

    Example:
        con = BufferConsole(b"abc")
        vm = MalbolgeVM(console=con)
        ...
        con.output   # bytes written by OUT
    """

    def __init__(self, data: bytes = b""):
        self.tx_buffer: bytearray = bytearray()
        self._rx_queue: deque = deque()
        self.flushes = 0
        self.inject_rx(data)

    def inject_rx(self, data: bytes):
        """Queue bytes for later IN instructions."""
        for byte in data:
            self._rx_queue.append(byte & 0xFF)

    def read_byte(self) -> Optional[int]:
        if self._rx_queue:
            return self._rx_queue.popleft()
        return None

    def write_byte(self, value: int):
        self.tx_buffer.append(value & 0xFF)

    def flush(self):
        self.flushes += 1

    @property
    def output(self) -> bytes:
        """All bytes written so far."""
        return bytes(self.tx_buffer)

