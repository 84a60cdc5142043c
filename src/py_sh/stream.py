"""Synchronous text streams — stdin, stdout and stderr for a command.

A ``Stream`` is the only I/O object a command ever touches.  It works
in one of three modes, chosen by its *destination*:

    - ``None`` — **buffer**.  ``write()`` appends to an internal buffer
      and ``read()`` drains it.  Pipe stages and captured output use this.
    - a callable — **sink**.  ``write()`` hands the text straight to the
      function (the terminal printer, or a file writer for ``>``).
    - another ``Stream`` — **chain**.  ``write()`` forwards immediately.

There is no blocking and no backpressure: a stage runs to completion
and the next stage reads everything it wrote in one go.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeAlias

Destination: TypeAlias = "Callable[[str], object] | Stream | None"


class Stream:
    """An append-only text buffer, or a forwarder to a destination."""

    def __init__(self, destination: Destination = None) -> None:
        """Create a stream.

        Args:
            destination: Where writes go — None to buffer, a callable to
                sink, or another Stream to chain to.

        """
        self._buffer: list[str] = []
        self._destination = destination

    @classmethod
    def of(cls, text: str) -> Stream:
        """Return a buffering stream pre-filled with *text*."""
        stream = cls()
        stream.write(text)
        return stream

    @property
    def destination(self) -> Destination:
        """Return where writes are forwarded (None when buffering)."""
        return self._destination

    def write(self, data: object) -> None:
        """Write *data* (converted to ``str``) to the destination or buffer."""
        text = data if isinstance(data, str) else str(data)
        if isinstance(self._destination, Stream):
            self._destination.write(text)
        elif self._destination is not None:
            self._destination(text)
        else:
            self._buffer.append(text)

    def read(self) -> str:
        """Return everything buffered so far and empty the buffer."""
        data = "".join(self._buffer)
        self._buffer.clear()
        return data

    def pipe(self, destination: Stream) -> Stream:
        """Forward all future writes to *destination* and return it."""
        self._destination = destination
        return destination

    def __repr__(self) -> str:
        """Show the stream mode."""
        if self._destination is None:
            return f"Stream(buffered={sum(map(len, self._buffer))})"
        return f"Stream(destination={self._destination!r})"
