"""
Stderr capture for stdio server processes.

A spawned server's stderr is never inherited by the host. It goes either to
the null device or, in debug mode, through an OS pipe whose lines are
logged tagged with the server name.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import IO, Optional

logger = logging.getLogger(__name__)


class StderrTap:
    """
    Owns the file object handed to the subprocess as its stderr.

    Handles:
    - Null-device sink when debug is off
    - Pipe plus reader thread when debug is on
    - Closing both ends once the process is gone

    Example:
        tap = StderrTap("files", debug=True)
        process = spawn(..., stderr=tap.sink)
        ...
        tap.close()
    """

    def __init__(self, server_name: str, debug: bool = False):
        self.server_name = server_name
        self.debug = debug

        self._thread: Optional[threading.Thread] = None

        if debug:
            read_fd, write_fd = os.pipe()
            reader = os.fdopen(read_fd, "r", encoding="utf-8", errors="replace")
            self._sink: IO[str] = os.fdopen(write_fd, "w", encoding="utf-8")
            self._thread = threading.Thread(
                target=self._pump,
                args=(reader,),
                name=f"mcp-stderr-{server_name}",
                daemon=True,
            )
            self._thread.start()
        else:
            self._sink = open(os.devnull, "w", encoding="utf-8")

    @property
    def sink(self) -> IO[str]:
        """File object to pass as the child's stderr."""
        return self._sink

    def _pump(self, reader: IO[str]) -> None:
        """Reader loop - log each stderr line until EOF."""
        try:
            for line in reader:
                text = line.strip()
                if text:
                    logger.debug(f"[MCP STDERR ({self.server_name})]: {text}")
        except (OSError, ValueError) as e:
            logger.debug(f"Stopped reading stderr of '{self.server_name}': {e}")
        finally:
            reader.close()

    def close(self) -> None:
        """
        Close the sink and wait briefly for the reader to drain.

        The reader sees EOF once every copy of the write end is closed, i.e.
        after the child has exited too. The reader thread closes its own end.
        Safe to call multiple times.
        """
        if not self._sink.closed:
            self._sink.close()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

    @property
    def is_closed(self) -> bool:
        return self._sink.closed
