from __future__ import annotations

import os
import re
import signal
from pathlib import Path

from heyu_mqtt.logging_abstraction import get_logger

logger = get_logger(__name__)


def send_signal(signal_num: int):
    """Send a signal to the current process.

    Args:
        signal_num (int): The signal number to send.

    """
    try:
        logger.debug("Sending signal %s to process %s", signal_num, os.getpid())
        os.kill(os.getpid(), signal_num)
    except OSError:
        logger.exception("Failed to send signal %s to process", signal_num)
        raise


def send_sigterm():
    """Ask the running bridge to shut down through its SIGTERM handler."""
    send_signal(signal.SIGTERM)


def apply_x10conf_directive(path: str | Path, key: str, value: str | None) -> bool:
    """Set a `KEY  VALUE` directive in a heyu x10.conf file.

    Every existing line for the directive (matched case-insensitively, leading
    whitespace allowed) is replaced; when there is none the directive is
    appended. The file is rewritten through a temporary file and a rename, and
    its parent directory is created if needed.

    Returns:
        True if the directive was written. Missing values are a no-op, and
        filesystem errors are logged rather than raised; both return False.

    """
    lp = "x10conf:"
    if value is None or not value.strip():
        return False

    value = value.strip().upper()
    conf_path = Path(path)
    directive = f"{key}  {value}\n"

    try:
        conf_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.exception("%s Failed to create config dir '%s'", lp, conf_path.parent)
        return False

    lines: list[str] = []
    if conf_path.is_file():
        try:
            with conf_path.open() as f:
                lines = f.readlines()
        except OSError:
            logger.exception("%s Failed to read '%s'", lp, conf_path)
            return False

    key_re = re.compile(rf"^\s*{re.escape(key)}\b", re.IGNORECASE)
    found = False
    for idx, line in enumerate(lines):
        if key_re.match(line):
            lines[idx] = directive
            found = True
    if not found:
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        lines.append(directive)

    tmp_path = conf_path.with_name(f"{conf_path.name}.tmp.{os.getpid()}")
    try:
        with tmp_path.open("w") as f:
            f.writelines(lines)
    except OSError:
        logger.exception("%s Failed to write temp '%s'", lp, tmp_path)
        return False
    try:
        _ = tmp_path.replace(conf_path)
    except OSError:
        logger.exception("%s Failed to write '%s' (rename)", lp, conf_path)
        tmp_path.unlink(missing_ok=True)
        return False

    logger.info("%s Applied directive %s %s to %s", lp, key, value, conf_path)
    return True
