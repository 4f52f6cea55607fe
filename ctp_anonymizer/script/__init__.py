from ctp_anonymizer.script.commands import Command, CommandKind, format_commands, parse_commands
from ctp_anonymizer.script.dicom_tree import DicomTree
from ctp_anonymizer.script.evaluator import Expression
from ctp_anonymizer.script.library import FunctionLibrary
from ctp_anonymizer.script.tables import IntegerTable, LookupTable
from ctp_anonymizer.script.tree import BaseTree, Match
from ctp_anonymizer.script.xml_tree import XmlTree

__all__ = [
    "BaseTree",
    "Command",
    "CommandKind",
    "DicomTree",
    "Expression",
    "FunctionLibrary",
    "IntegerTable",
    "LookupTable",
    "Match",
    "XmlTree",
    "format_commands",
    "parse_commands",
]
