import shutil
from pathlib import Path

from ctp_anonymizer.anonymization.files import BaseFileAnonymizer
from ctp_anonymizer.anonymization.models import AnonymizerStatus
from ctp_anonymizer.config.settings import Settings
from ctp_anonymizer.logging.logger import Log
from ctp_anonymizer.processor.exceptions import QuarantineError, UnsupportedObjectError
from ctp_anonymizer.processor.file_loader import ObjectLoader
from ctp_anonymizer.processor.pipeline import PipelineContext, PipelineStep


class LoadObjectStep(PipelineStep):
    def __init__(self, loader: ObjectLoader) -> None:
        self._loader = loader

    def run(self, context: PipelineContext) -> PipelineContext:
        try:
            context.object_file = self._loader.load(context.path)
        except UnsupportedObjectError as exc:
            Log.info(f"Skipping {context.path.name}: {exc}")
            context.status = AnonymizerStatus.skip(context.path, str(exc))
            return context
        Log.info(f"Loaded {context.object_file.kind} object {context.path.name}")
        return context


class FilterStep(PipelineStep):
    """Skips objects whose type is disabled or has no script configured."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.is_skipped:
            return context
        if context.object_file is None:
            raise ValueError("PipelineContext.object_file must be set before filtering")
        kind = context.object_file.kind
        if kind not in self._settings.enabled_types:
            context.status = AnonymizerStatus.skip(context.path, f"{kind} objects are not enabled")
            return context
        script_file = self._settings.script_for(kind)
        if script_file is None:
            context.status = AnonymizerStatus.skip(context.path, f"No script for {kind} objects")
            return context
        context.script = script_file.read_text(encoding="utf-8")
        return context


class AnonymizeStep(PipelineStep):
    """Runs the anonymizer for the object type.

    With an output directory, skipped objects are copied there unchanged.
    """

    def __init__(
        self,
        anonymizers: dict[str, BaseFileAnonymizer],
        output_dir: Path | None = None,
    ) -> None:
        self._anonymizers = anonymizers
        self._output_dir = output_dir

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.is_skipped:
            return self._pass_through(context)
        if context.object_file is None:
            raise ValueError("PipelineContext.object_file must be set before anonymization")
        anonymizer = self._anonymizers[context.object_file.kind]
        context.status = anonymizer.anonymize(
            context.path, self._output_path(context.path), context.script
        )
        return context

    def _pass_through(self, context: PipelineContext) -> PipelineContext:
        target = self._output_path(context.path)
        if target == context.path:
            return context
        shutil.copy2(context.path, target)
        context.status = AnonymizerStatus.skip(target, context.status.message)
        return context

    def _output_path(self, path: Path) -> Path:
        if self._output_dir is None:
            return path
        self._output_dir.mkdir(parents=True, exist_ok=True)
        return self._output_dir / path.name


class QuarantineStep(PipelineStep):
    """Moves objects that failed anonymization into the quarantine directory."""

    def __init__(self, quarantine_dir: Path) -> None:
        self._quarantine_dir = quarantine_dir

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.status is None or not context.status.is_quarantine:
            return context
        try:
            self._quarantine_dir.mkdir(parents=True, exist_ok=True)
            target = self._free_path(context.path.name)
            shutil.move(context.path, target)
        except OSError as exc:
            raise QuarantineError(f"Unable to quarantine {context.path.name}: {exc}") from exc
        Log.warning(f"Quarantined {context.path.name}: {context.status.message}")
        context.status = AnonymizerStatus.quarantine(target, context.status.message)
        return context

    def _free_path(self, name: str) -> Path:
        target = self._quarantine_dir / name
        counter = 1
        while target.exists():
            target = self._quarantine_dir / f"{Path(name).stem}-{counter}{Path(name).suffix}"
            counter += 1
        return target
