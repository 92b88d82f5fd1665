"""
Logging configuration module.

Console output goes to stderr so stdout can carry JSON/CSV results. Records
are labelled the way PowerShell labels its streams: DEBUG records print as
VERBOSE (per-probe detail, shown with --verbose), WARNING marks a skipped
discovery source, ERROR a rejected request.

An optional log file always records everything at DEBUG, without colors.
"""

import logging
import sys
from pathlib import Path

RESET = "\033[0m"

# Stream label and ANSI color per level
STREAM_LABELS = {
    logging.DEBUG: ("VERBOSE", "\033[2;37m"),
    logging.INFO: ("INFO", "\033[36m"),
    logging.WARNING: ("WARNING", "\033[33m"),
    logging.ERROR: ("ERROR", "\033[91m"),
    logging.CRITICAL: ("CRITICAL", "\033[1;37;41m"),
}

CONSOLE_FORMAT = "%(stream)s: %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s"

LIBRARY_LOGGERS = ("pyodbc", "ldap3", "winrm", "urllib3", "requests_ntlm", "spnego")


class StreamLabelFormatter(logging.Formatter):
    """Formats console records as ``VERBOSE: message``, optionally colored."""

    def __init__(self, use_colors: bool = True):
        super().__init__(CONSOLE_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        label, color = STREAM_LABELS.get(record.levelno, (record.levelname, ""))
        record.stream = f"{color}{label}{RESET}" if self.use_colors and color else label
        try:
            return super().format(record)
        finally:
            del record.stream


def _enable_windows_ansi():
    """Turn on virtual terminal processing for the stderr console on Windows."""
    if sys.platform != "win32":
        return
    try:
        import ctypes
        kernel32 = ctypes.windll.kernel32
        kernel32.SetConsoleMode(kernel32.GetStdHandle(-12), 7)
    except (AttributeError, OSError):
        pass  # legacy console, labels stay uncolored


def setup_logging(level: int = logging.WARNING, log_file: str | None = None, use_colors: bool | None = None):
    """
    Configure application-wide logging.

    Args:
        level: Console level; logging.DEBUG corresponds to -Verbose
        log_file: Optional path of a full DEBUG log
        use_colors: Force colors on/off; defaults to whether stderr is a TTY
    """
    if use_colors is None:
        use_colors = sys.stderr.isatty()
    if use_colors:
        _enable_windows_ansi()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StreamLabelFormatter(use_colors=use_colors))
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    # Root captures everything; each handler filters
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging initialized (console=%s, file=%s)", logging.getLevelName(level), log_file or "none"
    )
