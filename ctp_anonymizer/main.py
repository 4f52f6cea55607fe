"""Anonymize XML, zip and DICOM objects with anonymizer scripts.

Usage:
    python -m ctp_anonymizer.main report.xml
    python -m ctp_anonymizer.main study/*.dcm --out anonymized/

Scripts, the lookup table and the quarantine directory come from the
environment (or a ``.env`` file); see ``ctp_anonymizer.config.settings``.
"""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from ctp_anonymizer.config.settings import Settings
from ctp_anonymizer.logging.logger import Log
from ctp_anonymizer.processor.exceptions import ProcessorError
from ctp_anonymizer.processor.processor import build_processor
from ctp_anonymizer.script.exceptions import ScriptError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_QUARANTINE = 2


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctp_anonymizer",
        description="Run anonymizer scripts over XML, zip and DICOM objects",
    )
    parser.add_argument("paths", type=Path, nargs="+", help="Objects to anonymize")
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help=(
            "Directory for anonymized objects; skipped objects are copied there "
            "unchanged (default: anonymize in place)"
        ),
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: load settings -> build processor -> process each object."""
    args = _parser().parse_args(argv)
    settings = Settings()
    if args.out is not None:
        settings = settings.model_copy(update={"output_dir": args.out})
    Log.configure(settings.log_level, settings.log_file)

    try:
        processor = build_processor(settings)
    except (OSError, ValueError, ScriptError) as exc:
        Log.error(f"Unable to start: {exc}")
        return EXIT_ERROR

    exit_code = EXIT_OK
    for path in args.paths:
        try:
            status = processor.process(path)
        except (OSError, ProcessorError) as exc:
            Log.error(f"Unable to process {path}: {exc}")
            exit_code = max(exit_code, EXIT_ERROR)
            continue
        print(f"{status.status.value}\t{path}")
        if status.is_quarantine:
            exit_code = EXIT_QUARANTINE
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
