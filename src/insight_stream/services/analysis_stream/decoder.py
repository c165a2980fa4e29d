"""Incremental decoder turning raw byte chunks into event-stream frames."""

from __future__ import annotations

import codecs


FRAME_SEPARATOR = "\n\n"


class EventFrameDecoder:
    """Reassemble blank-line-delimited frames from arbitrarily chunked bytes.

    Transports hand over bytes in sizes unrelated to frame boundaries: one
    frame can span several chunks and one chunk can hold several frames. The
    decoder keeps the undecoded tail of a multi-byte UTF-8 sequence and any
    separator-less text between calls, so the frames it emits do not depend on
    how the input was split.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        # The last chunk ended in "\r"; a leading "\n" completes that "\r\n".
        self._after_cr = False

    @property
    def buffered(self) -> str:
        """Text received but not yet emitted as part of a frame."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Decode one chunk and return every frame it completes, in order."""
        text = self._decoder.decode(chunk)
        if not text:
            return []
        self._buffer += self._normalize_newlines(text)
        return self._drain()

    def flush(self) -> list[str]:
        """Decode whatever the decoder still holds at end of input.

        Trailing content without a closing blank line is not a frame and stays
        buffered; it is only released here if the final bytes complete one.
        """
        text = self._decoder.decode(b"", final=True)
        if text:
            self._buffer += self._normalize_newlines(text)
        self._after_cr = False
        return self._drain()

    def reset(self) -> None:
        """Drop all buffered bytes and text."""
        self._decoder.reset()
        self._buffer = ""
        self._after_cr = False

    def _normalize_newlines(self, text: str) -> str:
        skip_lf = self._after_cr
        self._after_cr = text.endswith("\r")
        if skip_lf and text.startswith("\n"):
            text = text[1:]
        return text.replace("\r\n", "\n").replace("\r", "\n")

    def _drain(self) -> list[str]:
        frames: list[str] = []
        while True:
            index = self._buffer.find(FRAME_SEPARATOR)
            if index == -1:
                break
            raw = self._buffer[:index]
            self._buffer = self._buffer[index + len(FRAME_SEPARATOR) :]
            if raw.strip():
                frames.append(raw)
        return frames
