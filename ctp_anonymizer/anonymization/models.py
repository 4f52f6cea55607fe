from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Status(Enum):
    OK = "OK"
    SKIP = "SKIP"
    QUARANTINE = "QUARANTINE"


@dataclass(frozen=True)
class AnonymizerStatus:
    """Outcome of one anonymization pass.

    ``document`` is the anonymized object for OK, the untouched object for
    SKIP, and the original, unmodified object for QUARANTINE.
    """

    status: Status
    document: Any = None
    message: str = ""

    @classmethod
    def ok(cls, document: Any, message: str = "") -> AnonymizerStatus:
        return cls(Status.OK, document, message)

    @classmethod
    def skip(cls, document: Any, message: str = "") -> AnonymizerStatus:
        return cls(Status.SKIP, document, message)

    @classmethod
    def quarantine(cls, document: Any, message: str) -> AnonymizerStatus:
        return cls(Status.QUARANTINE, document, message)

    @property
    def is_ok(self) -> bool:
        return self.status is Status.OK

    @property
    def is_skip(self) -> bool:
        return self.status is Status.SKIP

    @property
    def is_quarantine(self) -> bool:
        return self.status is Status.QUARANTINE
