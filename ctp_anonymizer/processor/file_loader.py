from pathlib import Path

from ctp_anonymizer.processor.exceptions import UnsupportedObjectError
from ctp_anonymizer.processor.models import DICOM, XML, ZIP, ObjectFile

_ZIP_SIGNATURE = b"PK\x03\x04"
_DICOM_PREAMBLE_LENGTH = 128
_DICOM_PREFIX = b"DICM"
_UTF8_BOM = b"\xef\xbb\xbf"


def classify(header: bytes) -> str | None:
    """Object type from the first bytes of a file, or None if unrecognized."""
    if header.startswith(_ZIP_SIGNATURE):
        return ZIP
    prefix_end = _DICOM_PREAMBLE_LENGTH + len(_DICOM_PREFIX)
    if header[_DICOM_PREAMBLE_LENGTH:prefix_end] == _DICOM_PREFIX:
        return DICOM
    text = header.removeprefix(_UTF8_BOM).lstrip()
    if text.startswith(b"<"):
        return XML
    return None


class ObjectLoader:
    """Recognizes the kind of object stored in a file by its content."""

    HEADER_SIZE = 512

    def load(self, path: Path) -> ObjectFile:
        """Classify the file at *path*.

        Raises:
            FileNotFoundError: if the file does not exist.
            UnsupportedObjectError: if the content is not XML, zip or DICOM.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        with path.open("rb") as stream:
            header = stream.read(self.HEADER_SIZE)
        kind = classify(header)
        if kind is None:
            raise UnsupportedObjectError(f"Unrecognized object: {path.name}")
        return ObjectFile(path=path, kind=kind)
