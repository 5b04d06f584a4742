"""Parsing of edge and type annotations into typed modifiers.

An edge annotation is a comma separated list of modifier tokens, applied in
order to the operations a child contributes to its parent::

    -build,*=where_*,where_*=*,export(where)

Commas inside parentheses, brackets, braces or quotes do not split tokens, so
``pre(*)=log("a", b)`` is a single token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .errors import ModifierSyntaxError
from .glob import Pattern

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {value: key for key, value in _OPENERS.items()}
_QUOTES = {'"', "'"}

EXCLUDE_MARKER = "-"
PRIVACY_TOGGLE = "!"


@dataclass(frozen=True)
class SelectAll:
    pass


@dataclass(frozen=True)
class PrivacyToggle:
    pass


@dataclass(frozen=True)
class Exclude:
    pattern: Pattern


@dataclass(frozen=True)
class Rename:
    left: Pattern
    right: Optional[Pattern] = None
    exclude: bool = False


@dataclass(frozen=True)
class Wrap:
    pattern: Pattern
    wrappers: Tuple[str, ...]


@dataclass(frozen=True)
class RegisterUnwrap:
    names: Tuple[str, ...]


@dataclass(frozen=True)
class Export:
    pattern: Pattern


@dataclass(frozen=True)
class Pointer:
    pattern: Pattern


@dataclass(frozen=True)
class Prefix:
    pattern: Pattern
    code: str


@dataclass(frozen=True)
class Postfix:
    pattern: Pattern
    code: str


Modifier = Union[
    SelectAll,
    PrivacyToggle,
    Exclude,
    Rename,
    Wrap,
    RegisterUnwrap,
    Export,
    Pointer,
    Prefix,
    Postfix,
]

# Selector modifiers written as ``keyword(pattern)`` with an optional payload.
_SELECTOR_KEYWORDS = {"wrap", "export", "ptr", "pre", "post"}
_PAYLOAD_REQUIRED = {"wrap", "pre", "post"}


@dataclass(frozen=True)
class Accessor:
    """Type-level ``ext(method)[:modifiers]`` declaration of an accessor edge."""

    method: str
    annotation: str = ""


def split_tokens(annotation: str, *, edge: str = "") -> List[str]:
    """Split ``annotation`` on top-level commas, dropping empty tokens."""
    tokens: List[str] = []
    current: List[str] = []
    stack: List[str] = []
    quote: Optional[str] = None
    for char in annotation:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            stack.append(char)
        elif char in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[char]:
                raise ModifierSyntaxError(
                    f"unbalanced {char!r}", edge=edge, token="".join(current) + char
                )
            stack.pop()
        elif char == "," and not stack:
            token = "".join(current).strip()
            if token:
                tokens.append(token)
            current = []
            continue
        current.append(char)
    token = "".join(current).strip()
    if quote is not None:
        raise ModifierSyntaxError("unterminated quote", edge=edge, token=token)
    if stack:
        raise ModifierSyntaxError(f"unbalanced {stack[-1]!r}", edge=edge, token=token)
    if token:
        tokens.append(token)
    return tokens


def parse_annotation(annotation: str, *, edge: str = "") -> List[Modifier]:
    """Parse an edge annotation; an empty annotation selects everything."""
    tokens = split_tokens(annotation, edge=edge)
    if not tokens:
        return [SelectAll()]
    return [parse_modifier(token, edge=edge) for token in tokens]


def parse_modifier(token: str, *, edge: str = "") -> Modifier:
    if token == PRIVACY_TOGGLE:
        return PrivacyToggle()
    if token == "*":
        return SelectAll()
    if token.startswith(EXCLUDE_MARKER):
        return Exclude(_pattern(token[1:], edge=edge, token=token))
    keyword, selector, payload = _split_selector(token, edge=edge)
    if keyword is not None:
        return _selector_modifier(keyword, selector, payload, edge=edge, token=token)
    if token == "unwrap" or token.startswith("unwrap="):
        names = _names(token.partition("=")[2], edge=edge, token=token)
        return RegisterUnwrap(names)
    left, sep, right = token.partition("=")
    pattern = _pattern(left, edge=edge, token=token)
    if not sep:
        return Rename(pattern)
    if not right:
        raise ModifierSyntaxError("missing rename target", edge=edge, token=token)
    if right == EXCLUDE_MARKER:
        return Rename(pattern, exclude=True)
    return Rename(pattern, _pattern(right, edge=edge, token=token))


def parse_type_annotation(annotation: str, *, owner: str = "") -> Union[Export, Accessor]:
    """Parse one class-level annotation (``export(...)`` or ``ext(...)``)."""
    token = annotation.strip()
    if token.startswith("ext("):
        close = token.find(")")
        if close < 0:
            raise ModifierSyntaxError("unbalanced selector parentheses", edge=owner, token=token)
        method = token[4:close].strip()
        if not method:
            raise ModifierSyntaxError("missing accessor name", edge=owner, token=token)
        rest = token[close + 1 :]
        if rest and not rest.startswith(":"):
            raise ModifierSyntaxError("expected ':' after accessor", edge=owner, token=token)
        return Accessor(method=method, annotation=rest[1:])
    modifier = parse_modifier(token, edge=owner)
    if not isinstance(modifier, Export):
        raise ModifierSyntaxError("only export(...) and ext(...) apply to a class", edge=owner, token=token)
    return modifier


def _split_selector(token: str, *, edge: str) -> Tuple[Optional[str], str, Optional[str]]:
    opening = token.find("(")
    if opening <= 0:
        return None, "", None
    keyword = token[:opening]
    if not keyword.isidentifier():
        return None, "", None
    if keyword not in _SELECTOR_KEYWORDS:
        raise ModifierSyntaxError(f"unknown modifier {keyword!r}", edge=edge, token=token)
    closing = token.find(")", opening)
    if closing < 0:
        raise ModifierSyntaxError("unbalanced selector parentheses", edge=edge, token=token)
    selector = token[opening + 1 : closing]
    rest = token[closing + 1 :]
    if not rest:
        return keyword, selector, None
    if not rest.startswith("="):
        raise ModifierSyntaxError("unexpected text after selector", edge=edge, token=token)
    return keyword, selector, rest[1:]


def _selector_modifier(
    keyword: str, selector: str, payload: Optional[str], *, edge: str, token: str
) -> Modifier:
    pattern = _pattern(selector, edge=edge, token=token)
    if keyword in _PAYLOAD_REQUIRED and not payload:
        raise ModifierSyntaxError(f"{keyword}(...) requires '=' and a payload", edge=edge, token=token)
    if keyword not in _PAYLOAD_REQUIRED and payload is not None:
        raise ModifierSyntaxError(f"{keyword}(...) takes no payload", edge=edge, token=token)
    if keyword == "wrap":
        return Wrap(pattern, _names(payload or "", edge=edge, token=token))
    if keyword == "export":
        return Export(pattern)
    if keyword == "ptr":
        return Pointer(pattern)
    if keyword == "pre":
        return Prefix(pattern, payload or "")
    return Postfix(pattern, payload or "")


def _pattern(selector: str, *, edge: str, token: str) -> Pattern:
    selector = selector.strip()
    if not selector:
        raise ModifierSyntaxError("empty selector", edge=edge, token=token)
    return Pattern.parse(selector)


def _names(text: str, *, edge: str, token: str) -> Tuple[str, ...]:
    names = tuple(name.strip() for name in text.split("|") if name.strip())
    if not names:
        raise ModifierSyntaxError("missing operation names", edge=edge, token=token)
    return names


__all__ = [
    "Accessor",
    "Exclude",
    "Export",
    "Modifier",
    "Pointer",
    "Postfix",
    "Prefix",
    "PrivacyToggle",
    "RegisterUnwrap",
    "Rename",
    "SelectAll",
    "Wrap",
    "parse_annotation",
    "parse_modifier",
    "parse_type_annotation",
    "split_tokens",
]
