"""
Filters: predicates over a single dictionary word.

There are three kinds of filter, and every token on a command line that isn't
a history back-reference becomes exactly one of them:

    [n]:chars   SequenceFilter. "chars" must appear at offset n (default 0).
    <n, >=n...  LengthFilter. Compare the word's length against n.
    chars       MatchFilter. The word must be made up of the given letters.
                A "*" stands for any single letter.

Parsing is attempted in that order, so "2:ing" is a sequence filter and "<5"
is a length filter, even though both would also parse as match filters.
"""
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
import re
from typing import Callable, Self, Sequence, Tuple


# Words are lower-cased once, when the dictionary is loaded.
Word = str

WILDCARD = "*"
SEQUENCE_SEPARATOR = ":"
ALL_DIGITS = re.compile(r"^[0-9]+$")


class FilterParseError(ValueError):
    """
    Raised when a string can't be parsed as a particular kind of filter.
    """


class ParseError(ValueError):
    """
    Base class for errors that abort parsing of an entire command line.
    """


class TokenClassificationError(ParseError):
    """
    Raised when a token can't be parsed as any kind of filter. The message
    explains why each kind rejected it.
    """

    def __init__(self, token: str, reasons: Sequence[Tuple[str, str]]) -> None:
        self.token = token
        self.reasons = tuple(reasons)
        explanation = "; ".join(f"{kind}: {why}" for kind, why in self.reasons)
        super().__init__(f'"{token}" is not a valid filter ({explanation})')


def parse_count(s: str, what: str) -> int:
    """
    Parse a non-negative decimal integer.

    :param s: the string to parse
    :param what: what the number is, for the error message

    :raises FilterParseError: if s isn't a string of ASCII digits
    """
    if ALL_DIGITS.search(s) is None:
        raise FilterParseError(f'invalid {what} "{s}"')

    return int(s)


@dataclass(frozen=True)
class MatchFilter:
    """
    A multiset test. Every letter in the word has to be matched against
    either a remaining slot for that exact letter or a wildcard slot.

    Without wildcards, letters in the filter may go unused: "tac" matches
    "cat" and "at". A filter with wildcards is a complete pattern, and every
    slot has to be filled: "c*t" matches "cat" and "cut", but not "ct" or "a"
    (too short) or "coat" (one letter too many).
    """

    required: dict[str, int] = field(default_factory=dict)
    wildcards: int = 0

    @property
    def size(self) -> int:
        """
        The total number of slots: letters plus wildcards.
        """
        return sum(self.required.values()) + self.wildcards

    @classmethod
    def parse(cls, text: str) -> Self:
        """
        Build a match filter from a string of letters. This never fails; any
        string, including an empty one, is a valid match filter.
        """
        required: Counter[str] = Counter()
        wildcards = 0
        for letter in text.lower():
            if letter == WILDCARD:
                wildcards += 1
            else:
                required[letter] += 1

        return cls(dict(required), wildcards)

    def check(self, word: Word) -> bool:
        remaining = Counter(self.required)
        wildcards = self.wildcards
        for letter in word:
            if remaining[letter] > 0:
                remaining[letter] -= 1
            elif wildcards > 0:
                wildcards -= 1
            else:
                return False

        return self.wildcards == 0 or len(word) == self.size


class Comparison(StrEnum):
    """
    Length comparison operators. The two-character ones come first so that
    prefix matching finds them before their one-character counterparts.
    """

    LE = "<="
    GE = ">="
    EQ = "="
    LT = "<"
    GT = ">"

    def compare(self, lhs: int, rhs: int) -> bool:
        match self:
            case Comparison.EQ:
                return lhs == rhs
            case Comparison.LT:
                return lhs < rhs
            case Comparison.GT:
                return lhs > rhs
            case Comparison.LE:
                return lhs <= rhs
            case Comparison.GE:
                return lhs >= rhs


@dataclass(frozen=True)
class LengthFilter:
    """
    Compares the length of a word against a fixed number.
    """

    op: Comparison
    length: int

    @classmethod
    def parse(cls, text: str) -> Self:
        """
        Parse a length filter such as "=5", "<3" or ">=10".

        :param text: the token to parse

        :raises FilterParseError: if there's no comparison operator or the
                                  remainder isn't a non-negative integer
        """
        if len(text) == 0:
            raise FilterParseError("empty length filter")

        for op in Comparison:
            if text.startswith(op.value):
                return cls(op, parse_count(text[len(op.value):], "length"))

        raise FilterParseError(
            f'"{text}" does not start with one of '
            + ", ".join(op.value for op in Comparison)
        )

    def check(self, word: Word) -> bool:
        return self.op.compare(len(word), self.length)


@dataclass(frozen=True)
class SequenceFilter:
    """
    A literal run of letters that must appear at a fixed offset (zero-based)
    in the word. "2:ing" matches "swing" and "things", but not "ring".
    """

    start: int
    sequence: str

    @property
    def min_word_len(self) -> int:
        """
        The shortest word that could possibly match.
        """
        return self.start + len(self.sequence)

    @classmethod
    def parse(cls, text: str) -> Self:
        """
        Parse a sequence filter of the form "[start]:letters". An empty start
        means 0. The letters may be empty, in which case the filter only
        checks that the word reaches the start offset.

        :param text: the token to parse

        :raises FilterParseError: if there's no ":" or the start offset isn't
                                  a non-negative integer
        """
        start, sep, sequence = text.partition(SEQUENCE_SEPARATOR)
        if sep == "":
            raise FilterParseError(f'missing "{SEQUENCE_SEPARATOR}"')

        offset = 0 if start == "" else parse_count(start, "start offset")
        return cls(offset, sequence.lower())

    def check(self, word: Word) -> bool:
        if len(word) < self.min_word_len:
            return False

        return all(
            word[self.start + i] == letter
            for i, letter in enumerate(self.sequence)
        )


Filter = SequenceFilter | LengthFilter | MatchFilter


# The order matters: it's the priority in which a token is classified.
# MatchFilter accepts anything, so it has to be last.
FILTER_PARSERS: Sequence[Tuple[str, Callable[[str], Filter]]] = (
    ("sequence filter", SequenceFilter.parse),
    ("length filter", LengthFilter.parse),
    ("match filter", MatchFilter.parse),
)


def parse_filter(token: str) -> Filter:
    """
    Classify a token as one of the filter kinds, trying each in priority
    order and returning the first that parses.

    :param token: the token to parse

    :return: the parsed filter

    :raises TokenClassificationError: if no kind of filter accepts the token
    """
    reasons: list[Tuple[str, str]] = []
    for kind, parser in FILTER_PARSERS:
        try:
            return parser(token)
        except FilterParseError as e:
            reasons.append((kind, str(e)))

    raise TokenClassificationError(token, reasons)

