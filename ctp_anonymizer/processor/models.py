from dataclasses import dataclass
from pathlib import Path

XML = "xml"
ZIP = "zip"
DICOM = "dicom"

OBJECT_TYPES = (XML, ZIP, DICOM)


@dataclass(frozen=True)
class ObjectFile:
    """A file on disk and the kind of object it holds."""

    path: Path
    kind: str
