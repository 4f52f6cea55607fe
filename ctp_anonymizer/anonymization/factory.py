from ctp_anonymizer.anonymization.anonymizer import ScriptAnonymizer
from ctp_anonymizer.anonymization.exceptions import AnonymizationError
from ctp_anonymizer.anonymization.files import (
    BaseFileAnonymizer,
    DicomFileAnonymizer,
    XmlFileAnonymizer,
    ZipFileAnonymizer,
)
from ctp_anonymizer.config.settings import Settings
from ctp_anonymizer.script.library import FunctionLibrary
from ctp_anonymizer.script.tables import IntegerTable, LookupTable


class AnonymizerFactory:
    """Creates the file anonymizer for an object type."""

    _FRONT_ENDS: dict[str, type[BaseFileAnonymizer]] = {
        "xml": XmlFileAnonymizer,
        "zip": ZipFileAnonymizer,
        "dicom": DicomFileAnonymizer,
    }

    @classmethod
    def create(
        cls,
        settings: Settings,
        kind: str,
        library: FunctionLibrary | None = None,
    ) -> BaseFileAnonymizer:
        """Create the front-end for *kind* ('xml', 'zip' or 'dicom').

        Pass *library* to share one set of lookup and integer tables across
        front-ends; otherwise a library is built from *settings*.

        Raises:
            AnonymizationError: if *kind* is unknown.
        """
        front_end = cls._FRONT_ENDS.get(kind)
        if front_end is None:
            raise AnonymizationError(f"Unsupported object type: {kind}")
        if library is None:
            library = cls.create_library(settings)
        return front_end(ScriptAnonymizer(library))

    @classmethod
    def create_library(cls, settings: Settings) -> FunctionLibrary:
        """Function library with the lookup table from ``settings.lookup_table_file``."""
        lookup_table = None
        if settings.lookup_table_file is not None:
            lookup_table = LookupTable.from_file(settings.lookup_table_file)
        return FunctionLibrary(lookup_table=lookup_table, integer_table=IntegerTable())
