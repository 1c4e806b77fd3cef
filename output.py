"""Console and log file output for rendered events."""
import logging
import sys
from typing import Optional, TextIO

from config import OutputConfig


logger = logging.getLogger(__name__)


class OutputWriter:
    """Writes rendered lines to the console and/or an append-only log file."""

    def __init__(self, config: OutputConfig, stream: Optional[TextIO] = None):
        """
        Initialize the output writer.

        Args:
            config: OutputConfig object with log file and quiet settings
            stream: Console stream, defaults to stdout
        """
        self.config = config
        self.stream = stream if stream is not None else sys.stdout
        self.log_file = None
        self._open()

    def _open(self):
        """Open the log file for appending, if one is configured."""
        if not self.config.log_file:
            return
        try:
            self.log_file = open(self.config.log_file, 'a', encoding='utf-8')
            logger.info(f"Appending events to {self.config.log_file}")
        except OSError as e:
            logger.error(f"Failed to open log file {self.config.log_file}: {e}")
            self.log_file = None

    def write(self, line: str) -> bool:
        """
        Emit one rendered line.

        Args:
            line: Rendered event without trailing newline

        Returns:
            True if every configured destination accepted the line
        """
        ok = True
        if not self.config.quiet:
            self.stream.write(line + "\n")
            self.stream.flush()

        if self.config.log_file:
            if not self.log_file:
                self._open()
                if not self.log_file:
                    return False
            try:
                self.log_file.write(line + "\n")
                self.log_file.flush()
            except OSError as e:
                logger.error(f"Failed to write to log file {self.config.log_file}: {e}")
                # Reopen on next call
                self.log_file = None
                ok = False
        return ok

    def close(self):
        """Close the log file."""
        if self.log_file:
            try:
                self.log_file.close()
            except OSError as e:
                logger.warning(f"Error closing log file: {e}")
            finally:
                self.log_file = None
