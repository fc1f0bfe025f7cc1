"""ZIP archive extraction into scoped temporary directories."""

import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterable, Union

from ..errors import ArchiveError, NoMatchingMemberError

logger = logging.getLogger(__name__)


@contextmanager
def staging_directory(prefix: str = "baseball-etl-") -> Generator[Path, None, None]:
    """Temporary working directory removed on every exit path."""
    with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
        yield Path(tmp)


def find_member(archive: zipfile.ZipFile, suffixes: Iterable[str]) -> zipfile.ZipInfo | None:
    """Return the first non-directory entry whose lower-cased name ends with a suffix."""
    wanted = tuple(s.lower() for s in suffixes)
    for info in archive.infolist():
        if info.is_dir():
            continue
        if info.filename.lower().endswith(wanted):
            return info
    return None


@contextmanager
def extract_member(
    archive_path: Union[str, Path],
    suffixes: Iterable[str],
    workdir: Union[str, Path, None] = None,
) -> Generator[Path, None, None]:
    """Extract the first matching archive member to a temporary file.

    Entries are scanned in archive order. The extracted file lives in a
    temporary directory (or under ``workdir`` when given) and is removed when
    the context exits, whether normally or by exception.

    Args:
        archive_path: Path to the ZIP archive
        suffixes: Accepted name endings (e.g., ('.txt',) or ('.csv',))
        workdir: Existing directory to extract into instead of a new temp dir

    Yields:
        Path of the extracted member

    Raises:
        ArchiveError: If the archive is missing or not a valid ZIP file
        NoMatchingMemberError: If no entry matches the suffixes
    """
    archive_path = Path(archive_path)
    suffixes = tuple(suffixes)

    try:
        archive = zipfile.ZipFile(archive_path)
    except FileNotFoundError as e:
        raise ArchiveError(f"Archive not found: {archive_path}") from e
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"Cannot open archive {archive_path}: {e}") from e

    with archive, staging_directory(prefix="baseball-etl-extract-") as tmp:
        member = find_member(archive, suffixes)
        if member is None:
            raise NoMatchingMemberError(archive_path, suffixes)

        target_dir = Path(workdir) if workdir is not None else tmp
        target = target_dir / Path(member.filename).name

        try:
            with archive.open(member) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveError(
                f"Cannot extract {member.filename} from {archive_path}: {e}"
            ) from e

        logger.info(f"Extracted {member.filename} from {archive_path.name}")
        try:
            yield target
        finally:
            if workdir is not None:
                target.unlink(missing_ok=True)
