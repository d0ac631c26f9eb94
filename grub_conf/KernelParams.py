#!/usr/bin/env python3
"""
KernelParams:
  An ordered, duplicate tolerant list of kernel command line tokens.
  Each token is either a bare flag ('quiet') or 'key=value' where the
  key ends at the first '='. Tokens are kept verbatim so that
  serialize(parse(s)) == s for any single-space separated line.

  Lookup:
    - parameter(key) returns the value of the LAST token with that key
      (later tokens shadow earlier ones), True for a bare flag, and
      KernelParams.ABSENT (False) if the key never appears
    - values(key) returns every value in order
  Editing:
    - add_parameter(key, value, placer) with AppendPlacer (default),
      ReplacePlacer(matcher) or BeforePlacer(matcher)
    - remove_parameter(matcher) drops every matching token
    - replace(text) swaps the whole content
"""
# pylint: disable=too-few-public-methods
import re
from typing import Callable, Iterator, List, Optional, Pattern, Union

from .Errors import ParseError

ValueMatcher = Union[None, str, Pattern, Callable[[object], bool]]


def split_token(token: str):
    """ Split a token into (key, value); value is True for a bare flag """
    if '=' in token:
        key, value = token.split('=', 1)
        return key, value
    return token, True


class Matcher:
    """
    Selects tokens by key and, optionally, by value.

    value_matcher may be a plain string (equality), a compiled regex
    (searched within the value) or a callable taking the value.
    Bare flags have the value True.
    """
    def __init__(self, key: Optional[str] = None, value_matcher: ValueMatcher = None):
        self.key = key
        self.value_matcher = value_matcher

    def __call__(self, key: str, value) -> bool:
        if self.key is not None and key != self.key:
            return False
        vm = self.value_matcher
        if vm is None:
            return True
        if callable(vm) and not hasattr(vm, 'search'):
            return bool(vm(value))
        if not isinstance(value, str):
            return False
        if hasattr(vm, 'search'):
            return vm.search(value) is not None
        return value == vm

    def __repr__(self):
        return f'Matcher(key={self.key!r}, value_matcher={self.value_matcher!r})'


class AppendPlacer:
    """ Puts the new token at the end """
    def place(self, tokens: List[str], token: str):
        tokens.append(token)


class ReplacePlacer:
    """ Overwrites the first matching token; appends if none matches """
    def __init__(self, matcher: Matcher):
        self.matcher = matcher

    def place(self, tokens: List[str], token: str):
        for idx, existing in enumerate(tokens):
            if self.matcher(*split_token(existing)):
                tokens[idx] = token
                return
        tokens.append(token)


class BeforePlacer:
    """ Inserts before the first matching token; appends if none matches """
    def __init__(self, matcher: Matcher):
        self.matcher = matcher

    def place(self, tokens: List[str], token: str):
        for idx, existing in enumerate(tokens):
            if self.matcher(*split_token(existing)):
                tokens.insert(idx, token)
                return
        tokens.append(token)


class KernelParams:
    """
    Kernel command line of one boot context (native, xen hypervisor
    or xen kernel).
    """
    ABSENT = False

    def __init__(self, text: Union[str, bytes, None] = None):
        self.tokens: List[str] = []
        if text is not None:
            self.tokens = self.tokenize(text)

    @classmethod
    def parse(cls, text: Union[str, bytes]) -> 'KernelParams':
        """ Build a list from a command line string """
        return cls(text)

    @staticmethod
    def tokenize(text: Union[str, bytes]) -> List[str]:
        """ Whitespace split; no quoting or escaping is understood """
        if isinstance(text, bytes):
            try:
                text = text.decode('utf-8')
            except UnicodeDecodeError as exc:
                raise ParseError(f'kernel command line is not valid UTF-8: {exc}') from exc
        if not isinstance(text, str):
            raise ParseError(f'kernel command line must be a string, not {type(text).__name__}')
        return text.split()

    def serialize(self) -> str:
        """ Tokens joined by single spaces, original order """
        return ' '.join(self.tokens)

    def __str__(self):
        return self.serialize()

    def __repr__(self):
        return f'KernelParams({self.serialize()!r})'

    def __len__(self):
        return len(self.tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __eq__(self, other):
        if isinstance(other, KernelParams):
            return self.tokens == other.tokens
        if isinstance(other, str):
            return self.serialize() == other
        return NotImplemented

    def empty(self) -> bool:
        """ True when there is no token at all """
        return not self.tokens

    def parameter(self, key: str):
        """
        Value of the last token with the given key, True for a bare flag,
        or ABSENT when the key does not appear.
        """
        result = self.ABSENT
        for token in self.tokens:
            tkey, value = split_token(token)
            if tkey == key:
                result = value
        return result

    def values(self, key: str) -> list:
        """ Every value for key, in order """
        out = []
        for token in self.tokens:
            tkey, value = split_token(token)
            if tkey == key:
                out.append(value)
        return out

    def add_parameter(self, key: str, value=True, placer=None):
        """
        Add 'key=value' (or the bare flag 'key' when value is True)
        using the placement policy of placer (append when None).
        """
        token = key if value is True else f'{key}={value}'
        (placer or AppendPlacer()).place(self.tokens, token)

    def remove_parameter(self, matcher: Matcher):
        """ Drop every token accepted by matcher """
        self.tokens = [t for t in self.tokens if not matcher(*split_token(t))]

    def replace(self, text: Union[str, bytes]):
        """ Replace the whole content from a raw command line """
        self.tokens = self.tokenize(text)


def strip_tokens(text: str, key: str) -> str:
    """ Remove every 'key=...' token from a serialized command line """
    return re.sub(rf'(?<!\S){re.escape(key)}=\S+', '', text)
