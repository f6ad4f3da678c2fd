"""
Archive export: writes generated show files into the base resource archive.

Generated paths replace base entries of the same name. The registry and
language files are merged by the caller before export (see
AssetModelBuilder.build); every other colliding entry is simply overwritten.
"""

import io
import json
import logging
import zipfile
from typing import Any, List, Mapping, Optional

from ..sources.base import ShowError


logger = logging.getLogger(__name__)

# Fixed entry timestamp so identical inputs give identical archives
ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class ArchiveExporter:
    """Builds the final archive from the base archive and generated files."""

    def __init__(self, compression_level: int = 6):
        """
        Initialize exporter.

        Args:
            compression_level: Deflate level (0-9) for generated entries
        """
        if not 0 <= compression_level <= 9:
            raise ValueError(f"compression_level must be between 0 and 9, got {compression_level}")
        self.compression_level = compression_level

    def export(self, base_archive: bytes, files: Mapping[str, bytes]) -> bytes:
        """
        Return a new archive holding the base entries plus the generated files.

        The archive is assembled in memory and only returned once complete,
        so a failure never leaves a partial archive behind.

        Args:
            base_archive: Bytes of the base archive
            files: Mapping of archive path to file content

        Returns:
            Bytes of the combined archive

        Raises:
            ArchiveWriteError: If the base archive cannot be read or the
                output cannot be written
        """
        for path in files:
            self._check_path(path)

        output = io.BytesIO()
        kept = 0
        overwritten = []

        try:
            with self._open(base_archive) as base, \
                    zipfile.ZipFile(output, 'w', zipfile.ZIP_DEFLATED,
                                    compresslevel=self.compression_level) as target:
                for info in base.infolist():
                    if info.filename in files:
                        overwritten.append(info.filename)
                        continue
                    target.writestr(info, base.read(info.filename))
                    kept += 1

                for path in sorted(files):
                    info = zipfile.ZipInfo(path, date_time=ENTRY_DATE_TIME)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = 0o644 << 16
                    target.writestr(info, files[path], compresslevel=self.compression_level)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, RuntimeError, ValueError) as e:
            raise ArchiveWriteError(f"Failed to write archive: {e}")

        for path in overwritten:
            logger.info(f"Replaced base archive entry {path}")
        logger.info(
            f"Exported archive with {kept} base entries and {len(files)} generated files "
            f"({len(overwritten)} replaced)"
        )
        return output.getvalue()

    def list_entries(self, base_archive: bytes) -> List[str]:
        """Names of every entry in an archive."""
        with self._open(base_archive) as archive:
            return archive.namelist()

    def read_json(self, base_archive: bytes, path: str) -> Optional[Any]:
        """
        Read a JSON document from an archive.

        Returns:
            Parsed document, or None when the entry does not exist

        Raises:
            ArchiveWriteError: If the archive or the entry is unreadable
        """
        with self._open(base_archive) as archive:
            try:
                data = archive.read(path)
            except KeyError:
                return None
            except (zipfile.BadZipFile, OSError, RuntimeError) as e:
                raise ArchiveWriteError(f"Cannot read {path} from base archive: {e}")

        try:
            return json.loads(data.decode('utf-8-sig'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ArchiveWriteError(f"Base archive entry {path} is not valid JSON: {e}")

    @staticmethod
    def _open(base_archive: bytes) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(io.BytesIO(base_archive), 'r')
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveWriteError(f"Base archive is not a readable archive: {e}")

    @staticmethod
    def _check_path(path: str) -> None:
        if not path or path.startswith('/') or '\\' in path or '..' in path.split('/'):
            raise ArchiveWriteError(f"Invalid archive path: {path!r}")


class ArchiveWriteError(ShowError):
    """Exception raised when the archive container cannot be read or written."""
