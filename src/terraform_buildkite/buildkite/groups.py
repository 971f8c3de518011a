"""Buildkite log groups.

Lines starting with ``---``, ``+++`` or ``~~~`` open a collapsed, expanded
or muted group in the Buildkite log viewer; ``^^^ +++`` expands the group
that is currently open.

See https://buildkite.com/docs/pipelines/configure/managing-log-output
"""

import sys
from typing import TextIO


class LogGroups:
    """Writes Buildkite log group headers to a stream.

    Example:
        groups = LogGroups(sys.stderr)
        groups.closed("terraform init")
        ...
        groups.open_current()  # expand it again because something failed
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def open(self, title: str) -> None:
        """Expanded group, visible by default."""
        self._write(f"+++ {title}")

    def closed(self, title: str) -> None:
        """Collapsed group, hidden until clicked."""
        self._write(f"--- {title}")

    def muted(self, title: str) -> None:
        """De-emphasised group for verbose output."""
        self._write(f"~~~ {title}")

    def open_current(self) -> None:
        self._write("^^^ +++")
