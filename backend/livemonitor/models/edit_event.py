"""
EditEvent - one recent-changes notification, normalized

Produced once per feed line by the feed parser, never mutated afterwards.
"""
import re
from dataclasses import dataclass
from typing import Optional, Tuple

# VersionKey: "<language>:<normalized title>", e.g. "de:Juniata_River"
VersionKey = str

_WHITESPACE = re.compile(r'\s')


def normalize_title(title: str) -> str:
    """Follow Wikipedia URLs: every whitespace character becomes an underscore"""
    return _WHITESPACE.sub('_', title)


def make_version_key(language: str, title: str) -> VersionKey:
    return f"{language}:{normalize_title(title)}"


def split_version_key(key: VersionKey) -> Tuple[str, str]:
    """Split a VersionKey into (language, title) on the first colon"""
    language, _, title = key.partition(':')
    return language, title


def display_title(key: VersionKey) -> str:
    """Human-readable title of a VersionKey ("en:New_York" -> "New York")"""
    return split_version_key(key)[1].replace('_', ' ')


@dataclass(frozen=True)
class DiffRef:
    """Revision pair of a diff, as announced in the feed"""
    from_rev: int
    to_rev: int


@dataclass(frozen=True)
class EditEvent:
    """A single edit to a language-specific article"""
    language: str
    title: str
    editor: str
    is_bot: bool
    delta_bytes: int
    observed_at_millis: int
    diff_ref: Optional[DiffRef] = None
    flags: str = ""
    comment: str = ""

    @property
    def version_key(self) -> VersionKey:
        return make_version_key(self.language, self.title)
