from abc import ABC, abstractmethod

from ctp_anonymizer.anonymization.models import AnonymizerStatus
from ctp_anonymizer.script.tree import BaseTree


class BaseAnonymizer(ABC):
    """Contract for script-driven anonymizers."""

    @abstractmethod
    def anonymize(self, tree: BaseTree, script: str) -> AnonymizerStatus:
        """Run *script* against *tree*.

        Args:
            tree: The document to anonymize, updated in place on success.
            script: Anonymizer script text.

        Returns:
            OK with the anonymized tree, or QUARANTINE with the tree exactly
            as it was before the pass and the reason for the failure.
        """
