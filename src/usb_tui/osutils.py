"""Operating system helpers for usb-tui."""

from __future__ import annotations

import logging
import subprocess
from typing import Sequence

LOGGER = logging.getLogger(__name__)

DEFAULT_COMMAND: tuple[str, ...] = ("lsusb",)
DEFAULT_TIMEOUT = 3.0


class EnumerationError(RuntimeError):
    """Raised when the USB enumeration command cannot produce a listing."""


def read_device_listing(
    command: Sequence[str] = DEFAULT_COMMAND,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Return the raw stdout of the enumeration *command*.

    The text is returned verbatim; trimming is left to the parser. Raises
    EnumerationError if the command is missing, times out or exits non-zero.
    """

    argv = list(command)
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise EnumerationError(f"{argv[0]} timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise EnumerationError(f"{argv[0]} failed to start: {exc}") from exc
    if result.returncode != 0:
        message = (result.stderr or "").strip() or f"{argv[0]} exited with code {result.returncode}"
        raise EnumerationError(message)
    LOGGER.debug("%s returned %d bytes", argv[0], len(result.stdout))
    return result.stdout


__all__ = ["DEFAULT_COMMAND", "DEFAULT_TIMEOUT", "EnumerationError", "read_device_listing"]
