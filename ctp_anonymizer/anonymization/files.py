"""File front-ends: load an object, run the script anonymizer, write the result.

Every front-end reports QUARANTINE with the input path when anything goes
wrong, and in that case never touches the input or the output file. Output
is written to a temporary file beside the target and moved into place, so
``out_path`` may be the same as ``in_path``.
"""

from __future__ import annotations

import os
import struct
import tempfile
import zipfile
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from lxml import etree
from pydicom.errors import InvalidDicomError

from ctp_anonymizer.anonymization.base import BaseAnonymizer
from ctp_anonymizer.anonymization.exceptions import AnonymizationError
from ctp_anonymizer.anonymization.models import AnonymizerStatus
from ctp_anonymizer.logging.logger import Log
from ctp_anonymizer.script.dicom_tree import DicomTree
from ctp_anonymizer.script.tree import BaseTree
from ctp_anonymizer.script.xml_tree import XmlTree

MANIFEST_NAME = "manifest.xml"


def _write_atomic(out_path: Path, write: Callable[[Path], None]) -> None:
    """Call *write* on a temporary file next to *out_path*, then move it into place."""
    out_path = Path(out_path)
    fd, name = tempfile.mkstemp(prefix="TMP-", suffix=out_path.suffix, dir=out_path.parent)
    os.close(fd)
    temp_path = Path(name)
    try:
        write(temp_path)
        os.replace(temp_path, out_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


class BaseFileAnonymizer(ABC):
    """Contract for anonymizing one object stored in a file."""

    def __init__(self, anonymizer: BaseAnonymizer) -> None:
        self._anonymizer = anonymizer

    def anonymize(self, in_path: Path, out_path: Path, script: str) -> AnonymizerStatus:
        """Anonymize *in_path* with *script* and write the result to *out_path*.

        Returns:
            OK with *out_path*, or QUARANTINE with *in_path* and the reason.
        """
        try:
            tree = self._load(Path(in_path))
            status = self._anonymizer.anonymize(tree, script)
            if not status.is_ok:
                return AnonymizerStatus.quarantine(in_path, status.message)
            self._save(tree, Path(in_path), Path(out_path))
        except AnonymizationError as exc:
            Log.warning(f"Unable to anonymize {in_path}: {exc}")
            return AnonymizerStatus.quarantine(in_path, str(exc))
        Log.debug(f"Anonymized {in_path} -> {out_path}")
        return AnonymizerStatus.ok(out_path)

    @abstractmethod
    def _load(self, path: Path) -> BaseTree:
        """Read the tree to anonymize.

        Raises:
            AnonymizationError: if the file cannot be read or parsed.
        """

    @abstractmethod
    def _save(self, tree: BaseTree, in_path: Path, out_path: Path) -> None:
        """Write the anonymized tree.

        Raises:
            AnonymizationError: if the output cannot be written.
        """


class XmlFileAnonymizer(BaseFileAnonymizer):
    def _load(self, path: Path) -> XmlTree:
        try:
            return XmlTree.from_file(path)
        except (OSError, etree.XMLSyntaxError) as exc:
            raise AnonymizationError(f"Unable to parse XML file {path.name}: {exc}") from exc

    def _save(self, tree: XmlTree, in_path: Path, out_path: Path) -> None:  # type: ignore[override]
        data = tree.to_bytes()
        try:
            _write_atomic(out_path, lambda temp: temp.write_bytes(data))
        except OSError as exc:
            raise AnonymizationError(f"Unable to save anonymized file: {exc}") from exc


class ZipFileAnonymizer(BaseFileAnonymizer):
    """Anonymizes the ``manifest.xml`` entry of a zip object.

    All other entries are copied to the new archive unchanged.
    """

    def _load(self, path: Path) -> XmlTree:
        try:
            with zipfile.ZipFile(path) as archive:
                manifest = archive.read(MANIFEST_NAME)
        except KeyError as exc:
            raise AnonymizationError(f"No {MANIFEST_NAME} in {path.name}") from exc
        except (OSError, zipfile.BadZipFile) as exc:
            raise AnonymizationError(f"Unable to read zip file {path.name}: {exc}") from exc
        try:
            return XmlTree.from_bytes(manifest)
        except etree.XMLSyntaxError as exc:
            raise AnonymizationError(f"Unable to parse {MANIFEST_NAME}: {exc}") from exc

    def _save(self, tree: XmlTree, in_path: Path, out_path: Path) -> None:  # type: ignore[override]
        manifest = tree.to_bytes()
        try:
            _write_atomic(out_path, lambda temp: self._copy_archive(in_path, temp, manifest))
        except (OSError, zipfile.BadZipFile) as exc:
            raise AnonymizationError(f"Unable to save anonymized file: {exc}") from exc

    @staticmethod
    def _copy_archive(in_path: Path, out_path: Path, manifest: bytes) -> None:
        with zipfile.ZipFile(in_path) as source, zipfile.ZipFile(
            out_path, "w", zipfile.ZIP_DEFLATED
        ) as target:
            for info in source.infolist():
                if info.is_dir():
                    continue
                if info.filename == MANIFEST_NAME:
                    target.writestr(MANIFEST_NAME, manifest)
                else:
                    target.writestr(info, source.read(info))


class DicomFileAnonymizer(BaseFileAnonymizer):
    def _load(self, path: Path) -> DicomTree:
        try:
            return DicomTree.from_file(path)
        except (OSError, InvalidDicomError) as exc:
            raise AnonymizationError(f"Unable to parse DICOM file {path.name}: {exc}") from exc

    def _save(self, tree: DicomTree, in_path: Path, out_path: Path) -> None:  # type: ignore[override]
        try:
            _write_atomic(out_path, tree.save)
        except (OSError, ValueError, TypeError, OverflowError, struct.error) as exc:
            raise AnonymizationError(f"Unable to save anonymized file: {exc}") from exc
