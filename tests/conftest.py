import zipfile
from pathlib import Path

import pytest
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.uid import ExplicitVRLittleEndian

from ctp_anonymizer.script.xml_tree import XmlTree

SAMPLE_XML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<study id="S1">'
    '<patient name="Doe^John" mrn="12345">'
    "<name>Doe^John</name>"
    "<birthdate>19600321</birthdate>"
    "</patient>"
    '<series uid="1.2.3.1"><note>first</note></series>'
    '<series uid="1.2.3.2"><note>second</note></series>'
    "<comment>keep me</comment>"
    "</study>"
)

MANIFEST_XML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<manifest><patient>Doe^John</patient><id>12345</id></manifest>"
)

CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"


def make_dataset() -> Dataset:
    """A small CT dataset with a one-item sequence."""
    ds = Dataset()
    ds.SOPClassUID = CT_IMAGE_STORAGE
    ds.SOPInstanceUID = "1.2.3.4.5"
    ds.StudyDate = "20200115"
    ds.PatientName = "Doe^John"
    ds.PatientID = "12345"
    ds.PatientAge = "047Y"
    item = Dataset()
    item.SeriesInstanceUID = "1.2.3.9"
    ds.ReferencedSeriesSequence = [item]

    meta = FileMetaDataset()
    meta.MediaStorageSOPClassUID = CT_IMAGE_STORAGE
    meta.MediaStorageSOPInstanceUID = "1.2.3.4.5"
    meta.TransferSyntaxUID = ExplicitVRLittleEndian
    ds.file_meta = meta
    return ds


@pytest.fixture()
def xml_tree() -> XmlTree:
    return XmlTree.from_string(SAMPLE_XML)


@pytest.fixture()
def xml_file(tmp_path: Path) -> Path:
    path = tmp_path / "study.xml"
    path.write_text(SAMPLE_XML, encoding="utf-8")
    return path


@pytest.fixture()
def zip_file(tmp_path: Path) -> Path:
    path = tmp_path / "object.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("manifest.xml", MANIFEST_XML)
        archive.writestr("images/image1.txt", "pixel data")
    return path


@pytest.fixture()
def dicom_file(tmp_path: Path) -> Path:
    path = tmp_path / "image.dcm"
    make_dataset().save_as(path, enforce_file_format=True)
    return path


@pytest.fixture()
def script_file(tmp_path: Path) -> Path:
    path = tmp_path / "script.txt"
    path.write_text('/study/patient/name = "ANON"\n', encoding="utf-8")
    return path
