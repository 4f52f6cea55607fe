import pytest

from ctp_anonymizer.script.commands import Command, CommandKind, format_commands, parse_commands
from ctp_anonymizer.script.exceptions import MalformedCommandError


class TestCommandParse:
    def test_assign_command(self) -> None:
        command = Command.parse('$name = "value"')
        assert command.kind is CommandKind.ASSIGN
        assert command.left == "$name"
        assert command.right == '"value"'

    def test_path_command(self) -> None:
        command = Command.parse("/study/@id = $hash(this)")
        assert command.kind is CommandKind.PATH
        assert command.left == "/study/@id"
        assert command.right == "$hash(this)"

    def test_splits_at_first_equal_sign(self) -> None:
        command = Command.parse('/a = "x=y"')
        assert command.left == "/a"
        assert command.right == '"x=y"'

    def test_comment_command(self) -> None:
        command = Command.parse("# a comment")
        assert command.is_comment
        assert command.text == "# a comment"

    def test_missing_equal_sign_raises(self) -> None:
        with pytest.raises(MalformedCommandError, match="No equal sign"):
            Command.parse("/a/b")

    def test_equality_ignores_source_text(self) -> None:
        assert Command.parse('/a="x"') == Command.parse('/a   =   "x"')


class TestParseCommands:
    def test_commands_in_script_order(self) -> None:
        script = '$a = "1"\n/p = $a\n/q/@x = "2"\n'
        commands = list(parse_commands(script))
        assert [c.kind for c in commands] == [
            CommandKind.ASSIGN,
            CommandKind.PATH,
            CommandKind.PATH,
        ]
        assert [c.left for c in commands] == ["$a", "/p", "/q/@x"]

    def test_multi_line_continuation(self) -> None:
        script = '$\na = "x"\n"y"\n/p = $a'
        commands = list(parse_commands(script))
        assert len(commands) == 2
        assert commands[0].kind is CommandKind.ASSIGN
        assert commands[0].left == "$a"
        assert commands[0].right == '"x"\n"y"'
        assert commands[1].left == "/p"

    def test_continuation_lines_get_a_newline(self) -> None:
        commands = list(parse_commands('/p = "a"\n"b"\n'))
        assert commands[0].text == '/p = "a""b"\n'

    def test_first_continuation_is_glued_to_the_command_line(self) -> None:
        (command,) = parse_commands('/p = $a\n"-x"\n')
        assert command.right == '$a"-x"'

    def test_indented_continuation_stays_separate(self) -> None:
        (command,) = parse_commands('/p = $a\n "-x"\n')
        assert command.right == '$a "-x"'

    def test_comments_after_a_command_are_consumed(self) -> None:
        script = '/p = "a"\n# one\n# two\n/q = "b"\n'
        commands = list(parse_commands(script))
        assert [c.left for c in commands] == ["/p", "/q"]

    def test_leading_comment_is_yielded_as_comment(self) -> None:
        commands = list(parse_commands('# header\n/p = "a"\n'))
        assert commands[0].is_comment
        assert commands[1].left == "/p"

    def test_empty_script_yields_nothing(self) -> None:
        assert list(parse_commands("")) == []

    def test_each_call_restarts(self) -> None:
        script = '/p = "a"\n/q = "b"\n'
        assert list(parse_commands(script)) == list(parse_commands(script))

    def test_malformed_command_raises_when_reached(self) -> None:
        commands = parse_commands('/p = "a"\n/q\n')
        assert next(commands).left == "/p"
        with pytest.raises(MalformedCommandError):
            next(commands)


class TestFormatCommands:
    def test_canonical_form(self) -> None:
        commands = list(parse_commands('$a="1"\n/p   =  $a\n'))
        assert format_commands(commands) == '$a = "1"\n/p = $a\n'

    def test_multi_line_right_side_starts_on_continuation_line(self) -> None:
        commands = list(parse_commands('$\na = "x"\n"y"\n/p = $a'))
        assert format_commands(commands) == '$a =\n "x"\n"y"\n/p = $a\n'

    def test_empty(self) -> None:
        assert format_commands([]) == ""

    @pytest.mark.parametrize(
        "script",
        [
            '# header\n$a = "x"\n# note\n/p = $a\n',
            '$\na = "x"\n"y"\n/p = $a',
            'stray text\n/p = $hash(this, "4")\n/q/@x = $require("v")\n',
        ],
    )
    def test_reparsing_canonical_text_is_idempotent(self, script: str) -> None:
        commands = list(parse_commands(script))
        assert list(parse_commands(format_commands(commands))) == commands
