"""Annotation of sentence text with inline Tana markup.

Wikipedia sentences often repeat a word (a link and a later bold of the same
word, for instance), so a plain ``str.replace`` would annotate the wrong
occurrence.  :func:`smart_replace` prefers the first whole-word match and only
falls back to the first raw occurrence when there is none.  Highly repetitive
sentences can still end up annotated at the wrong occurrence.
"""

import re
from typing import Union

Text = Union[str, int, float]


def _replace_word(text: str, target: str, replacement: str) -> Union[str, None]:
    pattern = re.compile(rf"\b{re.escape(target)}\b")
    if not pattern.search(text):
        return None
    # A callable keeps backslashes in the replacement literal
    return pattern.sub(lambda _match: replacement, text, count=1)


def _replace_raw(text: str, target: str, replacement: str) -> Union[str, None]:
    if target not in text:
        return None
    return text.replace(target, replacement, 1)


_STRATEGIES = (_replace_word, _replace_raw)


def smart_replace(text: Text, target: Text, replacement: str) -> str:
    """Replace the first occurrence of *target* in *text* with *replacement*.

    Empty *text* or *target* is a no-op.  Numbers are matched by their string
    form.  When *target* does not occur at all, *text* is returned unchanged.
    """
    if isinstance(text, (int, float)):
        text = str(text)
    if not text or target is None or target == "":
        return text or ""

    target = str(target)
    for strategy in _STRATEGIES:
        replaced = strategy(text, target, replacement)
        if replaced is not None:
            return replaced
    return text
