"""
Recent-changes feed parser

Turns one message of the per-language recent-changes IRC channels into an
EditEvent. With colour codes removed, a message reads:

    [[Juniata River]] M http://en.wikipedia.org/w/index.php?diff=516269072&oldid=514659029 * Johanna-Hypatia * (+67) Category:Place names

i.e. `[[title]] flags url * editor * (delta) comment`.

Edge cases:
- titles containing ':' are outside the article namespace (talk pages,
  log entries such as [[Special:Log/upload]]) and are rejected
- bots are flagged with 'B', and must also prefix or suffix their username
  with "bot" (http://en.wikipedia.org/wiki/Wikipedia:Bot_policy#Bot_accounts)
- new pages carry an `oldid=` URL without `diff=`; they have no diff
- a message without the `[[title]]` head or without two '*' separators is
  not an edit notification
"""
from typing import Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from ..models.edit_event import DiffRef, EditEvent

COLOR = '\x03'
# bold, reset, reverse, italic, underline
FORMATTING = {'\x02', '\x0f', '\x16', '\x1d', '\x1f'}


def strip_control_codes(message: str) -> str:
    """
    Remove mIRC formatting: colour codes (\\x03 plus up to two digits and an
    optional ",NN" background) and the single-byte formatting toggles.
    """
    out = []
    i = 0
    length = len(message)
    while i < length:
        char = message[i]
        if char == COLOR:
            i += 1
            i = _skip_digits(message, i, 2)
            if i + 1 < length and message[i] == ',' and message[i + 1].isdigit():
                i = _skip_digits(message, i + 1, 2)
            continue
        if char not in FORMATTING:
            out.append(char)
        i += 1
    return ''.join(out)


def _skip_digits(text: str, i: int, limit: int) -> int:
    taken = 0
    while i < len(text) and taken < limit and text[i].isdigit():
        i += 1
        taken += 1
    return i


def language_from_channel(channel: str) -> str:
    """Channel names follow "#language.project" """
    name = channel.lstrip('#')
    return name.split('.', 1)[0]


def is_bot_edit(flags: str, editor: str) -> bool:
    lowered = editor.lower()
    return 'B' in flags or lowered.startswith('bot') or lowered.endswith('bot')


def parse_diff_ref(url: str) -> Optional[DiffRef]:
    """Revision pair of a `index.php?diff=N&oldid=M` URL, None otherwise"""
    if not url:
        return None
    query = parse_qs(urlsplit(url).query)
    to_rev = query.get('diff', [''])[0]
    from_rev = query.get('oldid', [''])[0]
    if to_rev.isdigit() and from_rev.isdigit():
        return DiffRef(from_rev=int(from_rev), to_rev=int(to_rev))
    return None


def parse_delta(tail: str) -> Tuple[int, str]:
    """Split "(+67) comment" into (67, "comment")"""
    tail = tail.strip()
    if not tail.startswith('('):
        return 0, tail
    close = tail.find(')')
    if close == -1:
        return 0, tail
    inner = tail[1:close].strip()
    comment = tail[close + 1:].strip()
    digits = inner[1:] if inner[:1] in ('+', '-') else inner
    if not digits.isdigit():
        return 0, comment
    return int(inner), comment


def _split_head(head: str) -> Tuple[str, str]:
    """Flags and URL from the part between the title and the editor"""
    flags = []
    url = ''
    for token in head.split():
        if token.startswith('http://') or token.startswith('https://'):
            url = token
        else:
            flags.append(token)
    return ''.join(flags), url


def parse_feed_message(channel: str, message: str, now_millis: int) -> Optional[EditEvent]:
    """
    Parse a recent-changes message into an EditEvent.

    Returns None for anything that is not an article edit notification.
    """
    text = strip_control_codes(message).strip()
    if not text.startswith('[['):
        return None
    end = text.find(']]', 2)
    if end == -1:
        return None

    title = text[2:end].strip()
    if not title or ':' in title:
        return None

    parts = text[end + 2:].split('*', 2)
    if len(parts) < 3:
        return None
    head, editor, tail = parts
    editor = editor.strip()
    if not editor:
        return None

    flags, url = _split_head(head)
    delta, comment = parse_delta(tail)

    return EditEvent(
        language=language_from_channel(channel),
        title=title,
        editor=editor,
        is_bot=is_bot_edit(flags, editor),
        delta_bytes=delta,
        observed_at_millis=now_millis,
        diff_ref=parse_diff_ref(url),
        flags=flags,
        comment=comment,
    )
