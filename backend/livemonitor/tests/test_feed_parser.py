"""
Feed Parser Tests
=================

Messages are built the way the recent-changes bot sends them, colour codes
included.
"""

import pytest

from livemonitor.models import DiffRef
from livemonitor.services.feed_parser import (
    is_bot_edit,
    language_from_channel,
    parse_delta,
    parse_diff_ref,
    parse_feed_message,
    strip_control_codes,
)

NOW = 1_700_000_000_000


def rc_message(title, flags, url, editor, delta, comment):
    """Recent-changes line with the bot's mIRC colours"""
    return (
        f"\x0314[[\x0307{title}\x0314]]\x034 {flags}\x0310 \x0302{url}\x03 "
        f"\x035*\x03 \x0303{editor}\x03 \x035*\x03 (\x02{delta}\x02) \x0310{comment}\x03"
    )


JUNIATA = rc_message(
    "Juniata River",
    "M",
    "http://en.wikipedia.org/w/index.php?diff=516269072&oldid=514659029",
    "Johanna-Hypatia",
    "+67",
    "Category:Place names of Native American origin in Pennsylvania",
)


class TestStripControlCodes:

    def test_colours_and_formatting_removed(self):
        assert strip_control_codes("\x0314[[\x0307Foo\x0314]]\x03 (\x02+1\x02)") == "[[Foo]] (+1)"

    def test_background_colour(self):
        assert strip_control_codes("\x034,12red on blue\x03") == "red on blue"

    def test_digits_after_two_are_text(self):
        assert strip_control_codes("\x03123") == "3"

    def test_plain_text_untouched(self):
        assert strip_control_codes("nothing to see") == "nothing to see"


class TestParseFeedMessage:

    def test_article_edit(self):
        event = parse_feed_message("#en.wikipedia", JUNIATA, NOW)

        assert event is not None
        assert event.language == "en"
        assert event.title == "Juniata River"
        assert event.version_key == "en:Juniata_River"
        assert event.editor == "Johanna-Hypatia"
        assert event.delta_bytes == 67
        assert event.flags == "M"
        assert not event.is_bot
        assert event.diff_ref == DiffRef(from_rev=514659029, to_rev=516269072)
        assert event.observed_at_millis == NOW
        assert event.comment.startswith("Category:Place names")

    def test_namespaced_title_rejected(self):
        message = rc_message(
            "Talk:Juniata River", "", "http://en.wikipedia.org/w/index.php?diff=2&oldid=1",
            "Someone", "+5", "reply",
        )
        assert parse_feed_message("#en.wikipedia", message, NOW) is None

    def test_log_entry_rejected(self):
        message = rc_message(
            "Special:Log/upload", "upload", "", "Someone", "+0", "uploaded a file",
        )
        assert parse_feed_message("#en.wikipedia", message, NOW) is None

    def test_new_page_has_no_diff(self):
        message = rc_message(
            "Brand New", "N", "http://de.wikipedia.org/w/index.php?oldid=123&rcid=456",
            "Neuling", "+1500", "neu",
        )
        event = parse_feed_message("#de.wikipedia", message, NOW)

        assert event.diff_ref is None
        assert event.delta_bytes == 1500
        assert event.language == "de"

    def test_negative_delta(self):
        message = rc_message(
            "Foo", "", "http://en.wikipedia.org/w/index.php?diff=2&oldid=1", "Bob", "-42", "trim",
        )
        assert parse_feed_message("#en.wikipedia", message, NOW).delta_bytes == -42

    def test_bot_flag(self):
        message = rc_message(
            "Foo", "MB", "http://en.wikipedia.org/w/index.php?diff=2&oldid=1", "Helper", "+1", "x",
        )
        assert parse_feed_message("#en.wikipedia", message, NOW).is_bot

    @pytest.mark.parametrize("line", [
        "",
        "not a feed line",
        "[[Unclosed title * editor * (+1)",
        "[[Foo]] M http://x * editor without second separator",
        "[[Foo]] M http://x *   * (+1) empty editor",
    ])
    def test_garbage_rejected(self, line):
        assert parse_feed_message("#en.wikipedia", line, NOW) is None


class TestHelpers:

    @pytest.mark.parametrize("editor,flags,expected", [
        ("SieBot", "", True),
        ("BotMultichill", "", True),
        ("Abbott", "", False),
        ("Robotics fan", "", False),
        ("Someone", "B", True),
        ("Someone", "M", False),
    ])
    def test_bot_detection(self, editor, flags, expected):
        assert is_bot_edit(flags, editor) is expected

    def test_language_from_channel(self):
        assert language_from_channel("#war.wikipedia") == "war"

    def test_diff_ref_requires_both_revisions(self):
        assert parse_diff_ref("http://en.wikipedia.org/w/index.php?diff=5") is None
        assert parse_diff_ref("") is None
        assert parse_diff_ref("http://en.wikipedia.org/w/index.php?diff=5&oldid=4") == DiffRef(4, 5)

    def test_delta_without_parentheses(self):
        assert parse_delta(" comment only") == (0, "comment only")
