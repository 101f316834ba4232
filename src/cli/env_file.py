"""Single-key updates to a KEY=VALUE settings file such as .env."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def upsert_env_value(path: Path, key: str, value: str) -> None:
    """Set ``key`` to ``value`` in the file at ``path``.

    The first line starting with ``KEY=`` is replaced; if there is none the
    assignment is appended.  Every other line is left untouched, and the file
    is created when missing.
    """
    content = path.read_text(encoding="utf-8") if path.exists() else ""
    lines = content.split("\n") if content else []

    prefix = f"{key}="
    assignment = f"{key}={value}"
    for i, line in enumerate(lines):
        if line.startswith(prefix):
            lines[i] = assignment
            break
    else:
        if lines and lines[-1] == "":
            # keep the trailing newline after the appended line
            lines.insert(len(lines) - 1, assignment)
        else:
            lines.append(assignment)

    path.write_text("\n".join(lines), encoding="utf-8")
    logger.debug("Updated %s in %s", key, path)
