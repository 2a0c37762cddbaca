"""
Newline framing for the tool server's stdout stream
"""


class LineFramer:
    """
    Splits an unbounded byte stream into newline-terminated text lines.

    Bytes are buffered and split before decoding, so a multi-byte UTF-8
    character spread over two chunks is decoded intact once its line is
    complete. The trailing piece after the last newline is held back until
    the next chunk arrives.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._buffer = b""

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet terminated by a newline."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[str]:
        """
        Add a chunk and return every line it completes, in arrival order.

        Args:
            chunk: Raw bytes read from the stream

        Returns:
            Complete lines without their terminator (a trailing CR is dropped too)
        """
        if not chunk:
            return []

        pieces = (self._buffer + chunk).split(b"\n")
        self._buffer = pieces.pop()
        return [self._decode(piece) for piece in pieces]

    def flush(self) -> str | None:
        """
        Return and clear the unterminated remainder, if any.

        Called once the stream reaches EOF so that a final message written
        without a newline is not silently lost.
        """
        if not self._buffer:
            return None
        remainder = self._decode(self._buffer)
        self._buffer = b""
        return remainder

    def _decode(self, raw: bytes) -> str:
        return raw.decode(self.encoding, errors="replace").rstrip("\r")
