"""CSV rendering and writing of the assignment report."""

import csv
import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Union

from .errors import ReportError
from .models import Assignment

logger = logging.getLogger(__name__)

REPORT_HEADER = ["Account Number", "Account Name", "Username", "Permission Set", "Group"]


def to_row(assignment: Assignment) -> List[str]:
    return [
        assignment.account_id,
        assignment.account_name,
        assignment.username,
        assignment.permission_set_name,
        assignment.group_name or "",
    ]


def render_csv(assignments: Iterable[Assignment]) -> str:
    """Render the report as CSV text with a header row.

    Fields are quoted only when they contain a comma, a double quote or a line
    break; embedded quotes are doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(REPORT_HEADER)
    for assignment in assignments:
        writer.writerow(to_row(assignment))
    return buffer.getvalue()


def _default_file_mode() -> int:
    # mkstemp creates files as 0600; reports get the mode a plain open() would give
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_report(assignments: Iterable[Assignment], output_path: Union[str, Path]) -> Path:
    """Write the CSV report to ``output_path``.

    The content goes to a temporary file in the same directory which is then
    renamed over the target, so the target is either the complete report or
    untouched.

    Raises:
        ReportError: If the file cannot be written
    """
    path = Path(output_path).expanduser()
    content = render_csv(assignments)
    directory = path.parent if str(path.parent) else Path(".")

    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    except OSError as e:
        raise ReportError(f"Cannot write report to {path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.chmod(temp_name, _default_file_mode())
        os.replace(temp_name, path)
    except OSError as e:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise ReportError(f"Cannot write report to {path}: {e}") from e

    logger.info(f"Wrote report to {path}")
    return path
