# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Shell-style glob matching for email domain lists.

Globs follow the POSIX shell pattern language plus brace alternation:

  - ``*`` matches any sequence, ``?`` any single character
  - ``{a,b,c}`` matches any of the alternatives
  - ``[...]`` is a character class, ``[!...]`` a negated one
  - a backslash escapes the following character

Translation is best-effort. A glob whose translation is not a valid regular
expression never matches anything.
"""

from functools import lru_cache
from typing import Iterable, Optional, Pattern, Union
import logging
import re

from ..common.utils import split_list


logger = logging.getLogger(__name__)

# Escaped outside a character class. '^' is also escaped as the first
# character inside a class.
_SPECIAL_CHARACTERS = set(".()+|^$@%")


def convert_glob_to_regex(glob: str) -> str:
    """
    Convert a glob pattern into an equivalent regular expression.

    Args:
        glob: The glob pattern

    Returns:
        str: Regular expression source that recognises the same strings
    """
    parts = []
    in_group = 0
    in_class = 0
    first_index_in_class = -1
    i = 0

    while i < len(glob):
        ch = glob[i]

        if ch == "\\":
            i += 1
            if i >= len(glob):
                parts.append("\\\\")
            elif glob[i] == ",":
                parts.append(",")
            else:
                parts.append(re.escape(glob[i]))
        elif ch == "*":
            parts.append(".*" if in_class == 0 else "*")
        elif ch == "?":
            parts.append("." if in_class == 0 else "?")
        elif ch == "[":
            in_class += 1
            first_index_in_class = i + 1
            parts.append("[")
        elif ch == "]":
            in_class -= 1
            parts.append("]")
        elif ch in _SPECIAL_CHARACTERS:
            if in_class == 0 or (first_index_in_class == i and ch == "^"):
                parts.append("\\")
            parts.append(ch)
        elif ch == "!":
            parts.append("^" if first_index_in_class == i else "!")
        elif ch == "{":
            in_group += 1
            parts.append("(")
        elif ch == "}":
            in_group -= 1
            parts.append(")")
        elif ch == ",":
            parts.append("|" if in_group > 0 else ",")
        else:
            parts.append(ch)

        i += 1

    return "".join(parts)


@lru_cache(maxsize=256)
def compile_glob(glob: str) -> Optional[Pattern]:
    """
    Compile a glob into a regular expression pattern.

    Returns None (and logs) if the translated expression is invalid.
    """
    regex = convert_glob_to_regex(glob)
    try:
        return re.compile(regex)
    except re.error as e:
        logger.error(f"Error converting glob {glob!r} to regex {regex!r}: {e}")
        return None


def matches(pattern: Union[Pattern, str, None], candidate: str) -> bool:
    """
    Check whether the whole of candidate matches the pattern.

    Args:
        pattern: A compiled pattern, a glob string, or None
        candidate: The string to test

    Returns:
        bool: True if the pattern matches; False for None or invalid globs
    """
    if isinstance(pattern, str):
        pattern = compile_glob(pattern)

    if pattern is None or candidate is None:
        return False

    return pattern.fullmatch(candidate) is not None


def first_match(globs: Union[str, Iterable[str], None], candidate: str) -> Optional[str]:
    """
    Evaluate an ordered glob list against a candidate.

    Args:
        globs: Semicolon-separated globs, or an iterable of globs
        candidate: The string to test

    Returns:
        The first glob that matches, or None
    """
    for glob in split_list(globs):
        if matches(glob, candidate):
            return glob
    return None
