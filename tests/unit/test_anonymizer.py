from unittest.mock import MagicMock, patch

import pytest
from lxml import etree

from ctp_anonymizer.anonymization.anonymizer import ScriptAnonymizer
from ctp_anonymizer.script.dicom_tree import DicomTree
from ctp_anonymizer.script.functions import md5_hash
from ctp_anonymizer.script.library import FunctionLibrary
from ctp_anonymizer.script.tables import LookupTable
from ctp_anonymizer.script.xml_tree import XmlTree
from tests.conftest import make_dataset


def _run(xml: str, script: str) -> tuple[XmlTree, object]:
    tree = XmlTree.from_string(xml)
    status = ScriptAnonymizer().anonymize(tree, script)
    return tree, status


def _body(tree: XmlTree) -> bytes:
    return etree.tostring(tree.root)


class TestPathCommands:
    def test_sets_existing_element(self) -> None:
        tree, status = _run("<r><p>old</p></r>", '/r/p = "new"')
        assert status.is_ok
        assert status.document is tree
        assert _body(tree) == b"<r><p>new</p></r>"

    def test_variable_round_trip(self) -> None:
        tree, _ = _run("<r><p>old</p></r>", '$v = "abc"\n/p = $v')
        assert tree.root.find("p").text == "abc"

    def test_this_is_the_current_value(self) -> None:
        tree, _ = _run("<r><p>OLD</p></r>", "/p = $hash(this)")
        assert tree.root.find("p").text == md5_hash("OLD")

    def test_each_match_sees_its_own_value(self) -> None:
        tree, _ = _run("<r><p>a</p><p>b</p></r>", '/p[*] = this "!"')
        assert [p.text for p in tree.root] == ["a!", "b!"]

    def test_indexed_match(self) -> None:
        tree, _ = _run("<r><a/><b/><a/></r>", '/a[1] = "x"')
        assert _body(tree) == b"<r><a/><b/><a>x</a></r>"

    def test_out_of_range_index_is_a_no_op(self) -> None:
        tree, status = _run("<r><a/><b/><a/></r>", '/a[2] = "x"')
        assert status.is_ok
        assert _body(tree) == b"<r><a/><b/><a/></r>"

    def test_missing_optional_attribute_is_not_created(self) -> None:
        tree, status = _run("<r><e/></r>", '/e/@a = "1"')
        assert status.is_ok
        assert _body(tree) == b"<r><e/></r>"

    def test_required_attribute_is_created(self) -> None:
        tree, _ = _run("<r/>", '/missing/@x = $require("v")')
        assert _body(tree) == b'<r><missing x="v"/></r>'

    def test_remove_element(self) -> None:
        tree, _ = _run("<r><child><g/></child><keep/></r>", "/child = $remove()")
        assert _body(tree) == b"<r><keep/></r>"

    def test_remove_missing_element_is_a_no_op(self) -> None:
        tree, status = _run("<r><keep/></r>", "/child = $remove()")
        assert status.is_ok
        assert _body(tree) == b"<r><keep/></r>"

    def test_remove_attribute(self) -> None:
        tree, _ = _run('<r><e a="1" b="2"/></r>', "/e/@a = $remove()")
        assert _body(tree) == b'<r><e b="2"/></r>'

    def test_attribute_command_leaves_text_alone(self) -> None:
        tree, _ = _run('<r><e a="0">t</e></r>', '/e/@a = "1"')
        assert _body(tree) == b'<r><e a="1">t</e></r>'

    def test_element_command_leaves_attributes_alone(self) -> None:
        tree, _ = _run('<r><e a="0">t</e></r>', '/e = "1"')
        assert _body(tree) == b'<r><e a="0">1</e></r>'

    def test_path_reference_reads_the_document(self) -> None:
        tree, _ = _run('<r><id>7</id><e/></r>', '/e = "ID-" /r/id')
        assert tree.root.find("e").text == "ID-7"

    def test_glued_continuation_reads_as_one_name(self) -> None:
        tree, status = _run("<r><p>v</p><q>v</q></r>", '$a = "abc"\n/p = $a\n"-x"\n/q = this\n"-x"\n')
        assert status.is_ok
        assert tree.root.find("p").text == "null"
        assert not tree.root.find("q").text

    def test_indented_continuation_is_appended(self) -> None:
        tree, _ = _run("<r><p/></r>", '$a = "abc"\n/p = $a\n "-x"\n')
        assert tree.root.find("p").text == "abc-x"

    def test_comments_are_ignored(self) -> None:
        tree, status = _run("<r><p/></r>", '# header\n/p = "x"\n# trailing\n')
        assert status.is_ok
        assert tree.root.find("p").text == "x"


class TestAssignCommands:
    def test_print_logs_instead_of_storing(self) -> None:
        with patch("ctp_anonymizer.anonymization.anonymizer.Log") as log:
            tree, _ = _run("<r><p/></r>", '$print = "hello " /r/p/@x\n/p = $print')
        log.warning.assert_called_once_with("hello null")
        assert tree.root.find("p").text == "null"

    def test_assignment_sees_empty_this(self) -> None:
        tree, _ = _run("<r><p/></r>", '$v = "[" this "]"\n/p = $v')
        assert tree.root.find("p").text == "[]"

    def test_variables_do_not_leak_between_passes(self) -> None:
        anonymizer = ScriptAnonymizer()
        anonymizer.anonymize(XmlTree.from_string("<r/>"), '$v = "abc"')
        tree = XmlTree.from_string("<r><p/></r>")
        anonymizer.anonymize(tree, "/p = $v")
        assert tree.root.find("p").text == "null"


class TestFailures:
    def test_insufficient_arguments_leaves_document_untouched(self) -> None:
        tree = XmlTree.from_string('<r a="1"><p>old</p><q/></r>')
        before = tree.to_bytes()
        status = ScriptAnonymizer().anonymize(tree, '/p = "new"\n/q = $hashuid("1.2")\n')
        assert status.is_quarantine
        assert "Insufficient arguments for $hashuid" in status.message
        assert status.document is tree
        assert tree.to_bytes() == before

    def test_malformed_command_rejects_whole_script(self) -> None:
        tree = XmlTree.from_string("<r><p>old</p></r>")
        before = tree.to_bytes()
        status = ScriptAnonymizer().anonymize(tree, '/p = "new"\n/q\n')
        assert status.is_quarantine
        assert tree.to_bytes() == before

    def test_unparsable_numeric_argument(self) -> None:
        tree = XmlTree.from_string("<r><age>27Y</age></r>")
        status = ScriptAnonymizer().anonymize(tree, '/age = $round(this, "x")')
        assert status.is_quarantine
        assert tree.root.find("age").text == "27Y"

    def test_removing_root_quarantines(self) -> None:
        tree = XmlTree.from_string("<r><p/></r>")
        status = ScriptAnonymizer().anonymize(tree, "/r = $remove()")
        assert status.is_quarantine
        assert tree.root.tag == "r"

    def test_missing_lookup_key_quarantines(self) -> None:
        library = FunctionLibrary(lookup_table=LookupTable({"ptid/1": "A"}))
        tree = XmlTree.from_string("<r><id>2</id></r>")
        status = ScriptAnonymizer(library).anonymize(tree, '/id = $lookup("ptid", this)')
        assert status.is_quarantine
        assert "ptid/2" in status.message

    def test_unexpected_errors_quarantine(self) -> None:
        tree = MagicMock()
        tree.copy.side_effect = RuntimeError("boom")
        status = ScriptAnonymizer().anonymize(tree, '/p = "x"')
        assert status.is_quarantine
        assert status.message == "boom"
        tree.replace_with.assert_not_called()


class TestDicom:
    def test_runs_against_a_dataset(self) -> None:
        tree = DicomTree(make_dataset())
        script = (
            '$site = "S1"\n'
            "/PatientID = $hashptid($site, this, \"8\")\n"
            '/PatientName = "ANON"\n'
            "//SeriesInstanceUID = $hashuid(\"1.2.3\", this)\n"
            "/StudyDate = $incrementdate(this, \"-10\")\n"
        )
        status = ScriptAnonymizer().anonymize(tree, script)
        assert status.is_ok
        ds = tree.dataset
        assert ds.PatientID == md5_hash("[S1]12345", 8)
        assert str(ds.PatientName) == "ANON"
        assert ds.ReferencedSeriesSequence[0].SeriesInstanceUID.startswith("1.2.3.")
        assert ds.StudyDate == "20200105"

    @pytest.mark.parametrize("script", ['/PatientID = $hash()', '/PatientAge = $round(this, "")'])
    def test_failure_keeps_dataset(self, script: str) -> None:
        tree = DicomTree(make_dataset())
        status = ScriptAnonymizer().anonymize(tree, script)
        assert status.is_quarantine
        assert tree.dataset.PatientID == "12345"
        assert tree.dataset.PatientAge == "047Y"
