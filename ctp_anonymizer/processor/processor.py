from pathlib import Path

from ctp_anonymizer.anonymization.factory import AnonymizerFactory
from ctp_anonymizer.anonymization.models import AnonymizerStatus
from ctp_anonymizer.config.settings import Settings
from ctp_anonymizer.logging.logger import Log
from ctp_anonymizer.processor.file_loader import ObjectLoader
from ctp_anonymizer.processor.models import OBJECT_TYPES
from ctp_anonymizer.processor.pipeline import PipelineContext, PipelineStep
from ctp_anonymizer.processor.steps import AnonymizeStep, FilterStep, LoadObjectStep, QuarantineStep


class Processor:
    """Runs one object through the anonymizer stage.

    Pipeline: load -> filter -> anonymize -> quarantine.
    """

    def __init__(self, steps: list[PipelineStep]) -> None:
        self._steps = steps

    def process(self, path: Path) -> AnonymizerStatus:
        """Anonymize the object at *path* and report its disposition.

        Unrecognized objects, disabled types and types without a script pass
        through as SKIP, copied unchanged into the output directory if any.

        Raises:
            FileNotFoundError: if *path* does not exist.
            QuarantineError: if a failed object cannot be quarantined.
        """
        context = PipelineContext(path=Path(path))
        for step in self._steps:
            context = step.run(context)

        status = context.status
        if status is None:
            raise ValueError("Pipeline finished without a status")
        Log.info(f"{context.path.name}: {status.status.value} {status.message}".rstrip())
        return status


def build_processor(settings: Settings) -> Processor:
    """Build a Processor with one anonymizer per object type."""
    library = AnonymizerFactory.create_library(settings)
    anonymizers = {kind: AnonymizerFactory.create(settings, kind, library) for kind in OBJECT_TYPES}
    return Processor(
        steps=[
            LoadObjectStep(ObjectLoader()),
            FilterStep(settings),
            AnonymizeStep(anonymizers, output_dir=settings.output_dir),
            QuarantineStep(settings.quarantine_dir),
        ]
    )
