"""
AI Response Recovery
====================
Turns the analysis service's reply into a JSON object or array.

The service answers in whatever shape its workflow happens to produce:

- a raw JSON object or array
- an array of ``{"output": "<markdown-fenced JSON>"}`` items
- a string holding escaped JSON
- JSON encoded as a string inside JSON

Replies are classified into a tagged variant (``RawObject``, ``RawArray``,
``NeedsUnwrap``). Text is then run through an ordered tuple of strategies;
the first one that yields an object or array wins.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Union

from .exceptions import ParseError
from .models import KEYWORD_SOURCES

logger = logging.getLogger(__name__)

MAX_UNWRAP_DEPTH = 5

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_LABEL_RE = re.compile(r"""^\s*["']?(?:output|result|response)["']?\s*[:=]\s*""", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Tagged reply variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawObject:
    value: dict


@dataclass(frozen=True)
class RawArray:
    value: list


@dataclass(frozen=True)
class NeedsUnwrap:
    text: str


Reply = Union[RawObject, RawArray, NeedsUnwrap]


def _wrapped_output(item: Any) -> Optional[str]:
    """The ``output`` text of a workflow envelope that carries no keyword data itself."""
    if not isinstance(item, dict) or not isinstance(item.get("output"), str):
        return None
    if any(key in item for key, _ in KEYWORD_SOURCES):
        return None
    return item["output"]


def classify_reply(raw: Any) -> Reply:
    """Tag an already-decoded (or textual) reply with its variant."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        return NeedsUnwrap(raw)
    if isinstance(raw, dict):
        output = _wrapped_output(raw)
        return RawObject(raw) if output is None else NeedsUnwrap(output)
    if isinstance(raw, list):
        output = _wrapped_output(raw[0]) if raw else None
        return RawArray(raw) if output is None else NeedsUnwrap(output)
    raise ParseError(preview=repr(raw)[:200])


# ---------------------------------------------------------------------------
# Strategies: text -> decoded JSON (raise ValueError on failure)
# ---------------------------------------------------------------------------

def strip_fences(text: str) -> str:
    """Remove markdown code fences and stray backticks."""
    return _FENCE_RE.sub("", text).replace("`", "").strip()


def _extract_bracketed(text: str) -> str:
    """Substring from the first ``{``/``[`` to its last matching closer."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise ValueError("no JSON object or array in text")
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        raise ValueError("unterminated JSON object or array")
    return text[start:end + 1]


def _parse_fenced(text: str) -> Any:
    return json.loads(strip_fences(text))


def _parse_direct(text: str) -> Any:
    return json.loads(text)


def _parse_bracketed(text: str) -> Any:
    return json.loads(_extract_bracketed(strip_fences(text)))


def _parse_unlabelled(text: str) -> Any:
    stripped = strip_fences(text)
    unlabelled = _LABEL_RE.sub("", stripped, count=1)
    if unlabelled == stripped:
        raise ValueError("no leading label")
    return json.loads(unlabelled)


def _parse_unescaped(text: str) -> Any:
    unescaped = strip_fences(text).replace('\\"', '"').replace("\\n", "\n")
    try:
        return json.loads(unescaped)
    except ValueError:
        return json.loads(_extract_bracketed(unescaped))


_STRATEGIES: Tuple[Tuple[str, Callable[[str], Any]], ...] = (
    ("strip_fences", _parse_fenced),
    ("direct", _parse_direct),
    ("bracket_extract", _parse_bracketed),
    ("strip_label", _parse_unlabelled),
    ("unescape", _parse_unescaped),
)


def _is_structured(value: Any) -> bool:
    return isinstance(value, (dict, list))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def recover(raw: Any) -> Union[dict, list]:
    """
    Recover structured JSON from an analysis service reply.

    Args:
        raw: ``dict``, ``list``, ``str`` or ``bytes`` as returned by the client

    Returns:
        The decoded object or array.

    Raises:
        ParseError: no strategy produced an object or array
    """
    return _recover(raw, depth=0, attempted=[])


def _recover(raw: Any, depth: int, attempted: List[str]) -> Union[dict, list]:
    if depth > MAX_UNWRAP_DEPTH:
        raise ParseError(attempted, preview=str(raw)[:200])

    reply = classify_reply(raw)
    if isinstance(reply, (RawObject, RawArray)):
        return reply.value

    text = reply.text
    for name, strategy in _STRATEGIES:
        attempted.append(name)
        try:
            value = strategy(text)
        except ValueError:
            continue
        if _is_structured(value):
            logger.debug(f"[AI] Response decoded with strategy '{name}' (depth {depth})")
            return _unwrap_if_wrapped(value, depth, attempted)

    # Double encoding: the text decodes to another string
    attempted.append("double_decode")
    inner = _decode_to_string(text)
    if inner is not None:
        return _recover(inner, depth + 1, attempted)

    logger.warning(f"[AI] Could not decode response after {len(attempted)} attempts")
    raise ParseError(attempted, preview=text[:200])


def _unwrap_if_wrapped(value: Union[dict, list], depth: int, attempted: List[str]) -> Union[dict, list]:
    """A decoded ``[{output: "..."}]`` wrapper still needs its inner text decoded."""
    reply = classify_reply(value)
    if isinstance(reply, NeedsUnwrap):
        return _recover(reply.text, depth + 1, attempted)
    return value


def _decode_to_string(text: str) -> Optional[str]:
    for candidate in (text, strip_fences(text)):
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, str):
            return value
    return None
