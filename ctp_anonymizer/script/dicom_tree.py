"""pydicom-backed tree for running anonymizer scripts over DICOM datasets.

Path segments name data elements by keyword (``PatientName``) or by an
eight digit hex tag (``00100010``). The items of a sequence element are its
children and are addressed as ``item``, so
``/ReferencedSeriesSequence/item[0]/SeriesInstanceUID`` reaches into the
first item. DICOM has no attributes; ``@name`` segments never match.
"""

from __future__ import annotations

import copy
import re
from pathlib import Path
from typing import Any, ClassVar

import pydicom
from pydicom.datadict import dictionary_VR, tag_for_keyword
from pydicom.dataelem import DataElement
from pydicom.dataset import Dataset
from pydicom.multival import MultiValue

from ctp_anonymizer.script.tree import BaseTree

_HEX_TAG_RE = re.compile(r"[0-9A-Fa-f]{8}")

ITEM = "item"


def _tag_for_segment(name: str) -> int | None:
    if _HEX_TAG_RE.fullmatch(name):
        return int(name, 16)
    return tag_for_keyword(name)


class DicomTree(BaseTree):
    """Tree view of a pydicom Dataset."""

    _INT_VRS: ClassVar[frozenset[str]] = frozenset({"US", "UL", "SS", "SL", "SV", "UV", "AT"})
    _FLOAT_VRS: ClassVar[frozenset[str]] = frozenset({"FL", "FD"})
    # Byte VRs and the value length each one must be a multiple of.
    _BYTE_VRS: ClassVar[dict[str, int]] = {
        "OB": 2, "UN": 2, "OW": 2, "OF": 4, "OL": 4, "OD": 8, "OV": 8,
    }

    def __init__(self, dataset: Dataset) -> None:
        self._dataset = dataset

    @classmethod
    def from_file(cls, path: Path) -> DicomTree:
        return cls(pydicom.dcmread(str(path)))

    def save(self, path: Path) -> None:
        self._dataset.save_as(str(path))

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def document(self) -> Dataset:
        return self._dataset

    @property
    def root(self) -> Dataset:
        return self._dataset

    def children(self, node: Any) -> list[Any]:
        if isinstance(node, Dataset):
            return list(node)
        if node.VR == "SQ" and node.value is not None:
            return list(node.value)
        return []

    def has_name(self, node: Any, name: str) -> bool:
        if isinstance(node, Dataset):
            return name == ITEM
        if _HEX_TAG_RE.fullmatch(name):
            return int(name, 16) == node.tag
        return bool(node.keyword) and node.keyword == name

    def text(self, node: Any) -> str:
        if isinstance(node, Dataset) or node.VR == "SQ":
            return ""
        value = node.value
        if value is None or isinstance(value, (bytes, bytearray)):
            return ""
        if isinstance(value, (list, tuple, MultiValue)):
            return "\\".join(str(v) for v in value)
        return str(value)

    def set_text(self, node: Any, value: str) -> None:
        if isinstance(node, Dataset) or node.VR == "SQ":
            return
        node.value = self._coerce(node.VR, value)

    def get_attribute(self, node: Any, name: str) -> str | None:
        return None

    def set_attribute(self, node: Any, name: str, value: str) -> None:
        return None

    def remove_attribute(self, node: Any, name: str) -> None:
        return None

    def create_child(self, node: Any, name: str) -> Any | None:
        if isinstance(node, DataElement):
            if node.VR != "SQ" or name != ITEM:
                return None
            item = Dataset()
            node.value.append(item)
            return node.value[-1]

        tag = _tag_for_segment(name)
        if tag is None:
            return None
        vr = self._vr_for(tag)
        node.add_new(tag, vr, [] if vr == "SQ" else None)
        return node[tag]

    def remove(self, node: Any) -> None:
        owner = self._find_owner(self._dataset, node)
        if owner is None:
            return
        if isinstance(owner, Dataset):
            del owner[node.tag]
            return
        for index, item in enumerate(owner.value):
            if item is node:
                del owner.value[index]
                return

    def copy(self) -> DicomTree:
        return DicomTree(copy.deepcopy(self._dataset))

    def replace_with(self, other: BaseTree) -> None:
        self._dataset.clear()
        self._dataset.update(other.root)

    def _find_owner(self, dataset: Dataset, node: Any) -> Any | None:
        """Dataset holding element *node*, or sequence element holding item *node*."""
        for element in dataset:
            if element is node:
                return dataset
            if element.VR == "SQ" and element.value is not None:
                for item in element.value:
                    if item is node:
                        return element
                    owner = self._find_owner(item, node)
                    if owner is not None:
                        return owner
        return None

    @staticmethod
    def _vr_for(tag: int) -> str:
        try:
            vr = dictionary_VR(tag)
        except KeyError:
            return "UN"
        # Ambiguous dictionary entries look like "US or SS".
        return vr.split(" or ")[0]

    def _coerce(self, vr: str, value: str) -> Any:
        vr = str(vr).split(" or ")[0]
        if vr in self._INT_VRS:
            return int(value) if value.strip() else None
        if vr in self._FLOAT_VRS:
            return float(value) if value.strip() else None
        if vr in self._BYTE_VRS:
            data = value.encode("utf-8")
            return data + b"\x00" * (-len(data) % self._BYTE_VRS[vr])
        return value
