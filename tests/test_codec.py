"""Tests for the message and oodle text codec."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from conftest import make_message
from oodles.codec import (
    escape_line,
    extract_id,
    extract_title,
    format_message,
    format_oodle,
    parse_message,
    parse_oodle,
    read_oodle,
    split_lines,
    unescape_line,
)
from oodles.errors import (
    MalformedDateline,
    MalformedIdentifierMarkers,
    MalformedTitleMarkers,
    MissingDateline,
    MissingTitle,
    StorageError,
)
from oodles.models import Message, Oodle
from oodles.references import SelfReference

CDT = timezone(timedelta(hours=-5))
LPL_CONTENT = "Line one!\nLine tw- oh no is that a\n.\nIt was!"


def first_message():
    return make_message(0, LPL_CONTENT, minute=45)


def second_message(message_id=1):
    return Message(
        message_id=message_id,
        timestamp=datetime(2022, 6, 1, 14, 15, tzinfo=CDT),
        content="Looky here another message!",
    )


class TestLines:
    """Tests for line splitting and lone period escaping."""

    def test_split_lines(self):
        assert split_lines("") == []
        assert split_lines("a") == ["a"]
        assert split_lines("a\n") == ["a"]
        assert split_lines("a\n\nb") == ["a", "", "b"]
        assert split_lines("a\r\nb\r\n") == ["a", "b"]

    def test_escape(self):
        assert escape_line(".") == ".."
        assert escape_line("..") == ".."
        assert escape_line("text.") == "text."
        assert escape_line("") == ""

    def test_unescape(self):
        assert unescape_line("..") == "."
        assert unescape_line(".") == "."
        assert unescape_line("...") == "..."

    def test_escape_then_unescape_lone_period(self):
        assert unescape_line(escape_line(".")) == "."


class TestMessageCodec:
    """Tests for format_message / parse_message."""

    def test_formats_with_escaped_period(self):
        expected = "2022-06-01 13:45:00-0500\nLine one!\nLine tw- oh no is that a\n..\nIt was!\n"
        assert format_message(first_message()) == expected

    def test_formats_index_when_asked(self):
        msg = make_message(3, "hi")
        assert format_message(msg, print_index=True) == "2022-06-01 13:45:00-0500 (3)\nhi\n"

    def test_parses_escaped_period(self):
        text = "2022-06-01 13:45:00-0500\nLine one!\nLine tw- oh no is that a\n..\nIt was!"
        assert parse_message(text) == first_message()

    def test_parse_reads_index(self):
        msg = parse_message("2022-06-01 13:45:00-0500 (7)\nbody")
        assert msg.message_id == 7
        assert msg.content == "body"

    def test_parse_defaults_index_to_zero(self):
        assert parse_message("2022-06-01 13:45:00-0500\nbody").message_id == 0

    def test_parse_trims_trailing_newlines(self):
        assert parse_message("2022-06-01 13:45:00-0500\nbody\n\n").content == "body"

    def test_parse_dateline_only(self):
        msg = parse_message("2022-06-01 13:45:00-0500")
        assert msg.content == ""
        assert msg.references == []

    def test_parse_derives_references(self):
        msg = parse_message("2022-06-01 13:45:00-0500\nsee {~0}")
        assert msg.references == [SelfReference(message_id=0)]

    def test_parse_empty_is_missing_dateline(self):
        with pytest.raises(MissingDateline):
            parse_message("")

    def test_parse_bad_dateline(self):
        with pytest.raises(MalformedDateline):
            parse_message("hello\nworld")

    @pytest.mark.parametrize("print_index", [False, True])
    def test_round_trip(self, print_index):
        msg = make_message(0, LPL_CONTENT)
        assert parse_message(format_message(msg, print_index)) == msg

    def test_round_trip_jump_needs_index(self):
        msg = make_message(5, "jumped")
        assert parse_message(format_message(msg, print_index=True)) == msg
        assert parse_message(format_message(msg, print_index=False)).message_id == 0


class TestHeaderHelpers:
    """Tests for title and identifier markers."""

    def test_extract_title_trims(self):
        assert extract_title("-=   Hey there  =-") == "Hey there"

    def test_extract_title_without_spaces(self):
        assert extract_title("-=Hey=-") == "Hey"

    @pytest.mark.parametrize("line", ["Hey", "-= Hey", "Hey =-", "=- Hey -=", "-=-"])
    def test_extract_title_rejects(self, line):
        assert extract_title(line) is None

    def test_extract_id(self):
        assert extract_id("[ABC123]") == "ABC123"
        assert extract_id("[ABC123") is None
        assert extract_id("ABC123") is None


class TestFormatOodle:
    """Tests for format_oodle."""

    def test_sequential_messages_have_no_indices(self):
        oodle = Oodle.new("Hey, I'm a title!", "/tmp/nothing.oodle", first_message(), oodle_id="123456")
        oodle.push_message(second_message(1))

        expected = (
            "-= Hey, I'm a title! =-\n[123456]\n\n"
            "2022-06-01 13:45:00-0500\nLine one!\nLine tw- oh no is that a\n..\nIt was!\n.\n\n"
            "2022-06-01 14:15:00-0500\nLooky here another message!\n.\n"
        )
        assert format_oodle(oodle) == expected

    def test_index_jump_is_printed(self):
        oodle = Oodle.new("Hey, I'm a title!", "/tmp/nothing.oodle", first_message(), oodle_id="abcdef")
        oodle.push_message(second_message(2))

        expected = (
            "-= Hey, I'm a title! =-\n[abcdef]\n\n"
            "2022-06-01 13:45:00-0500\nLine one!\nLine tw- oh no is that a\n..\nIt was!\n.\n\n"
            "2022-06-01 14:15:00-0500 (2)\nLooky here another message!\n.\n"
        )
        assert format_oodle(oodle) == expected

    def test_only_jump_points_are_marked(self):
        oodle = Oodle(oodle_id="X", title="T")
        for declared in (0, 0, 5, 0, 9):
            oodle.push_message(make_message(declared, "m"))

        datelines = [line for line in format_oodle(oodle).split("\n") if line.startswith("2022")]
        assert datelines == [
            "2022-06-01 13:45:00-0500",
            "2022-06-01 13:45:00-0500",
            "2022-06-01 13:45:00-0500 (5)",
            "2022-06-01 13:45:00-0500",
            "2022-06-01 13:45:00-0500 (9)",
        ]

    def test_first_message_jump_is_marked(self):
        oodle = Oodle(oodle_id="X", title="T")
        oodle.push_message(make_message(3, "m"))
        assert "-0500 (3)\n" in format_oodle(oodle)

    def test_no_messages(self):
        assert format_oodle(Oodle(oodle_id="X", title="T")) == "-= T =-\n[X]\n"


class TestParseOodle:
    """Tests for parse_oodle."""

    def test_parses_two_messages(self):
        text = (
            "-= Hey, I'm a title! =-\n[ABC123]\n\n"
            "2022-06-01 13:45:00-0500\nLine one!\nLine tw- oh no is that a\n..\nIt was!\n.\n\n"
            "2022-06-01 14:15:00-0500\nLooky here another message!\n.\n"
        )
        expected = Oodle.new("Hey, I'm a title!", "/tmp", first_message(), oodle_id="ABC123")
        expected.push_message(second_message(1))

        assert parse_oodle(text) == expected

    def test_last_terminator_optional(self):
        text = "-= T =-\n[ID]\n\n2022-06-01 13:45:00-0500\none\n.\n\n2022-06-01 14:15:00-0500\ntwo\n"
        oodle = parse_oodle(text)
        assert [m.content for m in oodle.messages] == ["one", "two"]
        assert [m.message_id for m in oodle.messages] == [0, 1]

    def test_last_terminator_without_newline(self):
        text = "-= T =-\n[ID]\n\n2022-06-01 13:45:00-0500\nLine one!\n..\nIt was!\n."
        oodle = parse_oodle(text)
        assert len(oodle.messages) == 1
        assert oodle.messages[0].content == "Line one!\n.\nIt was!"

    def test_crlf_line_endings(self):
        text = (
            "-= Hey =-\r\n[ABC123]\r\n\r\n"
            "2022-06-01 13:45:00-0500\r\none\r\n..\r\n.\r\n\r\n"
            "2022-06-01 14:15:00-0500\r\ntwo\r\n.\r\n"
        )
        oodle = parse_oodle(text)

        assert oodle.title == "Hey"
        assert oodle.oodle_id == "ABC123"
        assert [m.content for m in oodle.messages] == ["one\n.", "two"]
        assert [m.message_id for m in oodle.messages] == [0, 1]
        assert format_oodle(oodle) == text.replace("\r\n", "\n")

    def test_bare_cr_line_endings(self):
        text = "-= T =-\r[ID]\r\r2022-06-01 13:45:00-0500\rone\r.\r\r2022-06-01 14:15:00-0500\rtwo\r."
        assert [m.content for m in parse_oodle(text).messages] == ["one", "two"]

    def test_missing_identifier_generates_one(self):
        oodle = parse_oodle("-= T =-\n\n2022-06-01 13:45:00-0500\none\n.\n")
        assert len(oodle.oodle_id) == 6
        assert oodle.messages[0].content == "one"

    def test_missing_identifier_and_blank_line(self):
        oodle = parse_oodle("-= T =-\n2022-06-01 13:45:00-0500\none\n.\n")
        assert oodle.messages[0].content == "one"

    def test_title_only(self):
        oodle = parse_oodle("-= T =-\n[ID]\n")
        assert oodle.title == "T"
        assert oodle.oodle_id == "ID"
        assert oodle.messages == []

    def test_identifier_without_trailing_newline(self):
        assert parse_oodle("-= T =-\n[ID]").oodle_id == "ID"

    def test_gap_indices_recovered(self):
        text = (
            "-= T =-\n[ID]\n\n"
            "2022-06-01 13:45:00-0500\na\n.\n\n"
            "2022-06-01 13:45:00-0500 (4)\nb\n.\n\n"
            "2022-06-01 13:45:00-0500\nc\n.\n"
        )
        assert [m.message_id for m in parse_oodle(text).messages] == [0, 4, 5]

    def test_out_of_order_indices_clamped(self):
        text = (
            "-= T =-\n[ID]\n\n"
            "2022-06-01 13:45:00-0500 (3)\na\n.\n\n"
            "2022-06-01 13:45:00-0500 (1)\nb\n.\n"
        )
        assert [m.message_id for m in parse_oodle(text).messages] == [3, 4]

    def test_extra_blank_lines_tolerated(self):
        text = "-= T =-\n[ID]\n\n2022-06-01 13:45:00-0500\na\n.\n\n\n\n2022-06-01 13:45:00-0500\nb\n.\n\n"
        assert [m.content for m in parse_oodle(text).messages] == ["a", "b"]

    def test_file_recorded(self):
        assert parse_oodle("-= T =-\n[ID]\n", file=Path("/x/y")).file == Path("/x/y")

    def test_missing_title(self):
        with pytest.raises(MissingTitle):
            parse_oodle("")
        with pytest.raises(MissingTitle):
            parse_oodle("-= T =-")

    def test_malformed_title(self):
        with pytest.raises(MalformedTitleMarkers) as exc:
            parse_oodle("Title\n[ID]\n")
        assert exc.value.line == "Title"

    @pytest.mark.parametrize("id_line", ["[ID", "[]", "[ID] trailing"])
    def test_malformed_identifier(self, id_line):
        with pytest.raises(MalformedIdentifierMarkers):
            parse_oodle(f"-= T =-\n{id_line}\n\n2022-06-01 13:45:00-0500\na\n.\n")

    def test_malformed_dateline_in_body(self):
        with pytest.raises(MalformedDateline):
            parse_oodle("-= T =-\n[ID]\n\nnot a date\na\n.\n")

    def test_round_trip_with_jumps(self):
        oodle = Oodle(oodle_id="ID", title="Round trip")
        for declared, content in ((0, "a\n.\nb"), (3, "{~0}"), (0, "c"), (10, "")):
            oodle.push_message(make_message(declared, content))
        assert parse_oodle(format_oodle(oodle)) == oodle

    def test_reformat_is_byte_identical(self):
        text = (
            "-= Hey =-\n[AbC123]\n\n"
            "2022-06-01 13:45:00-0500\nLine one!\n..\nIt was!\n.\n\n"
            "2022-06-01 13:50:00+0100 (6)\nsecond\n.\n"
        )
        assert format_oodle(parse_oodle(text)) == text

    def test_reformat_repairs_missing_terminator(self):
        text = "-= T =-\n[ID]\n\n2022-06-01 13:45:00-0500\na"
        assert format_oodle(parse_oodle(text)) == text + "\n.\n"


class TestReadOodle:
    """Tests for read_oodle."""

    def test_reads_and_sets_file(self, temp_dir):
        path = temp_dir / "t.oodle"
        path.write_text("-= T =-\n[ID]\n\n2022-06-01 13:45:00-0500\na\n.\n", encoding="utf-8")
        oodle = read_oodle(path)
        assert oodle.file == path
        assert oodle.messages[0].content == "a"

    def test_missing_file_is_storage_error(self, temp_dir):
        with pytest.raises(StorageError):
            read_oodle(temp_dir / "nope")

    def test_format_error_carries_path(self, temp_dir):
        path = temp_dir / "bad"
        path.write_text("no title markers\n", encoding="utf-8")
        with pytest.raises(MalformedTitleMarkers) as exc:
            read_oodle(path)
        assert exc.value.path == path
        assert str(path) in str(exc.value)
