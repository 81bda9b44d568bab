"""
Commands: a line of filters, combined with logical AND.

Besides filter literals, a command line can reuse filters from the command
before it:

    %%   the filter at this same position in the previous command
    %n   filter n (zero-based) of the previous command

The reused filter is the very same object, not a copy, so a filter that is
carried forward through several commands is still the one originally parsed.
"""
from dataclasses import dataclass
from typing import Iterable, Iterator, Self

from .filters import ALL_DIGITS, Filter, ParseError, Word, parse_filter


BACK_REFERENCE_PREFIX = "%"


class NoHistoryError(ParseError):
    """
    A back-reference was used, but there is no previous command.
    """


class BackReferenceSyntaxError(ParseError):
    """
    The text after "%" is neither "%" nor a non-negative integer.
    """


class BackReferenceRangeError(ParseError):
    """
    A back-reference points past the end of the previous command.
    """


@dataclass(frozen=True)
class Command:
    """
    A parsed command line. Commands are immutable; a new one is built for
    every line of input.
    """

    filters: tuple[Filter, ...] = ()

    @classmethod
    def parse(cls, line: str, previous: Self | None = None) -> Self:
        """
        Parse a line of input into a command. If any token fails to parse,
        the whole line is rejected.

        :param line: the line to parse
        :param previous: the last successfully parsed command, if any. It's
                         only consulted for back-references.

        :return: the new command

        :raises ParseError: if any token is invalid
        """
        filters: list[Filter] = []
        for position, token in enumerate(line.split()):
            if token.startswith(BACK_REFERENCE_PREFIX):
                filters.append(
                    resolve_back_reference(token, position, previous)
                )
            else:
                filters.append(parse_filter(token))

        return cls(tuple(filters))

    def matches(self, word: Word) -> bool:
        """
        Determine whether a word passes every filter. Filters are applied
        in order, stopping at the first one that fails.
        """
        return all(f.check(word) for f in self.filters)

    def evaluate(self, corpus: Iterable[Word]) -> Iterator[Word]:
        """
        Lazily yield the words in the corpus that match this command, in
        corpus order. Each call starts a fresh pass over the corpus.

        :param corpus: the dictionary words

        :return: an iterator over the matching words
        """
        for word in corpus:
            if self.matches(word):
                yield word


def resolve_back_reference(
    token: str, position: int, previous: Command | None
) -> Filter:
    """
    Look up the filter a back-reference token refers to.

    :param token: the token, including the leading "%"
    :param position: the token's position in the command being parsed
    :param previous: the previous command, if any

    :return: the referenced filter instance

    :raises BackReferenceSyntaxError: if the reference is malformed
    :raises NoHistoryError: if there's no previous command
    :raises BackReferenceRangeError: if the index is out of range
    """
    match token[len(BACK_REFERENCE_PREFIX):]:
        case "%":
            index = position
        case s if ALL_DIGITS.search(s) is not None:
            index = int(s)
        case s:
            raise BackReferenceSyntaxError(
                f'"{token}": "{BACK_REFERENCE_PREFIX}" must be followed by '
                f'"%" or a filter number, not "{s}"'
            )

    if previous is None:
        raise NoHistoryError(f'"{token}": there is no previous command')

    total = len(previous.filters)
    if index >= total:
        raise BackReferenceRangeError(
            f'"{token}": the previous command has only {total} filter(s), '
            f"numbered from 0"
        )

    return previous.filters[index]
