"""
AlloCine Query Canonicalization

Turns an ordered parameter mapping into the exact query string the AlloCine
API signs and verifies. The server re-derives the signature over the bytes it
receives, so escapes must use upper-case hex digits and pairs must stay in
the order the caller inserted them.
"""
import re
import urllib.parse
from typing import Mapping

_ESCAPE_RE = re.compile(r"%[0-9a-fA-F]{2}")


def normalize_escapes(text: str) -> str:
    """
    Upper-cases the hex digits of every percent-escape in `text`.

    Applying it twice gives the same result as applying it once.
    """
    return _ESCAPE_RE.sub(lambda match: match.group(0).upper(), text)


def encode(raw_value: str) -> str:
    """
    Percent-encodes a single query value.

    Spaces become '+', and everything outside ``A-Z a-z 0-9 - _ . ~`` becomes
    an upper-case ``%XX`` escape (so '=' is always '%3D', never '%3d').

    Args:
        raw_value (str): The unescaped value.

    Returns:
        str: The escaped value, ready to be inserted into a ParameterSet.
    """
    return normalize_escapes(urllib.parse.quote_plus(raw_value, safe=""))


def serialize(params: Mapping[str, str]) -> str:
    """
    Joins a ParameterSet into ``key=value`` pairs separated by '&'.

    Iteration order is kept as-is. Values are inserted verbatim; anything that
    needs escaping must already have gone through `encode`.
    """
    return "&".join(f"{key}={value}" for key, value in params.items())
