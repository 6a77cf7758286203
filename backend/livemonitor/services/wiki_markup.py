"""
Wiki markup helpers for diff annotation

Pure functions over a single added line of wikitext:

- tokenize_wikitext: splits a line into text, [[link]] and {{template}} tokens
- extract_wiki_concepts: link targets of a line, qualified by language
- remove_wiki_noise: drops namespaced links, templates, attributes, tags
- remove_wiki_markup: renders the remaining markup down to plain text

Edge cases:
- an unclosed "[[" or "{{" is plain text
- link and template bodies never span lines
- a link body is "target|label"; only the target decides whether the link
  is namespaced (contains ':')
- [[Image:...]] links are not concepts
- "[[Foo]] and [[Category:Bar]]" loses only the category link
"""
import re
from dataclasses import dataclass
from typing import List

from ..models.edit_event import normalize_title

TEXT = 'text'
LINK = 'link'
TEMPLATE = 'template'

_DELIMITERS = {'[[': (']]', LINK), '{{': ('}}', TEMPLATE)}

# align="center" and friends
HTML_ATTRIBUTE_RE = re.compile(r'\w+\s*=\s*"\w+"')
COMMENT_RE = re.compile(r'<!--[\s\S]*?-->')
TAG_RE = re.compile(r'</?([a-z][a-z0-9]*)\b[^>]*>', re.IGNORECASE)
EMPHASIS_RE = re.compile(r"'{2,}")
HEADING_RE = re.compile(r'^\s*(=+)\s*(.*?)\s*\1\s*$')
EXTERNAL_LINK_RE = re.compile(r'\[(?:https?:)?//[^\s\]]+\s*([^\]]*)\]')
LIST_PREFIX_RE = re.compile(r'^\s*[*#:;]+\s*')
HORIZONTAL_RULE_RE = re.compile(r'^\s*-{4,}\s*$')
WHITESPACE_RE = re.compile(r'\s+')
EQUALS_RE = re.compile(r'\s?=\s?')


@dataclass(frozen=True)
class Token:
    kind: str
    value: str

    @property
    def link_target(self) -> str:
        return self.value.split('|', 1)[0].strip()

    @property
    def is_namespaced(self) -> bool:
        return ':' in self.link_target

    def source(self) -> str:
        if self.kind == LINK:
            return f"[[{self.value}]]"
        if self.kind == TEMPLATE:
            return f"{{{{{self.value}}}}}"
        return self.value


def tokenize_wikitext(text: str) -> List[Token]:
    """Split wikitext into TEXT, LINK and TEMPLATE tokens (no nesting)"""
    tokens: List[Token] = []
    buffer: List[str] = []
    i = 0
    while i < len(text):
        opener = text[i:i + 2]
        if opener in _DELIMITERS:
            closer, kind = _DELIMITERS[opener]
            end = text.find(closer, i + 2)
            if end != -1 and '\n' not in text[i + 2:end]:
                if buffer:
                    tokens.append(Token(TEXT, ''.join(buffer)))
                    buffer = []
                tokens.append(Token(kind, text[i + 2:end]))
                i = end + 2
                continue
        buffer.append(text[i])
        i += 1
    if buffer:
        tokens.append(Token(TEXT, ''.join(buffer)))
    return tokens


def extract_wiki_concepts(text: str, language: str) -> List[str]:
    """
    Link targets of a line as concepts.

    Same-language links become "language:Title", namespaced and interwiki
    links keep their "ns:Title" form, image links are dropped.
    """
    concepts = []
    for token in tokenize_wikitext(text):
        if token.kind != LINK:
            continue
        target = token.link_target
        if not target or target.startswith('Image:'):
            continue
        if ':' in target:
            concepts.append(normalize_title(target))
        else:
            concepts.append(f"{language}:{normalize_title(target)}")
    return concepts


def strip_tags(text: str) -> str:
    """Remove HTML comments and tags, keep their text content"""
    return TAG_RE.sub('', COMMENT_RE.sub('', text))


def remove_wiki_noise(text: str) -> str:
    """
    Remove structural noise: namespaced links such as
    [[Kategorie:Moravske Toplice| Moravske Toplice]], templates such as
    {{NewZealand-writer-stub}}, HTML attributes, stray braces and tags.
    """
    parts = []
    for token in tokenize_wikitext(text):
        if token.kind == LINK and token.is_namespaced:
            continue
        if token.kind == TEMPLATE:
            parts.append(' ')
        else:
            parts.append(token.source())
    text = ''.join(parts)
    text = HTML_ATTRIBUTE_RE.sub(' ', text)
    text = text.replace('{{', ' ').replace('}}', ' ')
    text = WHITESPACE_RE.sub(' ', text).strip()
    return strip_tags(text)


def render_wiki_line(text: str) -> str:
    """Render line-level wiki markup (headings, lists, emphasis, external links) as text"""
    if HORIZONTAL_RULE_RE.match(text):
        return ''
    heading = HEADING_RE.match(text)
    if heading:
        text = heading.group(2)
    text = LIST_PREFIX_RE.sub('', text)
    text = EXTERNAL_LINK_RE.sub(r'\1', text)
    return EMPHASIS_RE.sub('', text)


def remove_wiki_markup(text: str) -> str:
    """Plain text of a line: no markup, no table pipes, no link brackets"""
    text = strip_tags(render_wiki_line(text))
    text = text.replace('|', ' ').replace('[[', ' ').replace(']]', ' ')
    text = WHITESPACE_RE.sub(' ', text)
    text = EQUALS_RE.sub(' = ', text)
    return text.strip()
