"""Open the user's editor on a note."""
import logging
import os
import shlex
import subprocess
import tempfile

from meowpad.errors import MeowpadError

logger = logging.getLogger(__name__)

DEFAULT_EDITOR = "vi"


def editor_command() -> list:
    """$VISUAL, then $EDITOR, then vi, split into argv."""
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or DEFAULT_EDITOR
    return shlex.split(editor)


def edit(initial: str = "") -> str:
    """
    Let the user edit ``initial`` and return the result.

    Raises:
        MeowpadError: if the editor cannot be started or exits non-zero
    """
    fd, path = tempfile.mkstemp(prefix="meowpad-", suffix=".md")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(initial)
        command = editor_command() + [path]
        logger.debug("Running editor: %s", command)
        try:
            result = subprocess.run(command)
        except OSError as e:
            raise MeowpadError(f"Unable to start editor {command[0]}: {e}",
                               operation="edit", subject=command[0]) from e
        if result.returncode != 0:
            raise MeowpadError(f"Editor exited with status {result.returncode}",
                               operation="edit", subject=command[0])
        with open(path, encoding="utf-8") as f:
            return f.read()
    finally:
        os.unlink(path)
