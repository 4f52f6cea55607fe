from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ctp_anonymizer.anonymization.models import AnonymizerStatus
from ctp_anonymizer.processor.models import ObjectFile


@dataclass(slots=True)
class PipelineContext:
    path: Path
    object_file: ObjectFile | None = None
    script: str = ""
    status: AnonymizerStatus | None = None

    @property
    def is_skipped(self) -> bool:
        return self.status is not None and self.status.is_skip


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
