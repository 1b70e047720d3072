"""Logging formatters and filters for stream routing."""

import logging


class StreamFormatter(logging.Formatter):
    """Logging formatter that prepends the failing stage when present."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a stage prefix if present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message with optional ``[stage]`` prefix
        """
        msg = super().format(record)
        stage = getattr(record, "stage", None)

        if stage:
            return f"[{stage}] {msg}"

        return msg


class StreamRoutingFilter(logging.Filter):
    """Let a handler accept only records routed to its stream.

    Records logged with ``extra={"stream": "stdout"}`` go to stdout; all
    others go to stderr.

    Parameters
    ----------
    stream : str
        ``"stdout"`` or ``"stderr"``
    """

    def __init__(self, stream: str) -> None:
        super().__init__()
        self.stream = stream

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True if the record belongs to this filter's stream.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to check

        Returns
        -------
        bool
            Whether the handler should emit the record
        """
        return getattr(record, "stream", "stderr") == self.stream
