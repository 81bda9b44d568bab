"""Tests for command parsing, back-references and evaluation."""
import pytest

from wordfind.commands import (
    BackReferenceRangeError,
    BackReferenceSyntaxError,
    Command,
    NoHistoryError,
)
from wordfind.filters import (
    Comparison,
    LengthFilter,
    MatchFilter,
    ParseError,
    SequenceFilter,
)


# =============================================================================
# Parsing
# =============================================================================

class TestParse:
    """Command lines made up of filter literals."""

    def test_filters_in_order(self):
        command = Command.parse("ab =3 1:b")
        assert command.filters == (
            MatchFilter({"a": 1, "b": 1}, 0),
            LengthFilter(Comparison.EQ, 3),
            SequenceFilter(1, "b"),
        )

    def test_any_white_space_separates(self):
        command = Command.parse("  ab\t=3   ")
        assert len(command.filters) == 2

    def test_empty_line(self):
        assert Command.parse("").filters == ()
        assert Command.parse("   ").filters == ()


# =============================================================================
# Back-references
# =============================================================================

class TestBackReferences:
    """"%n" and "%%" reuse filter instances from the previous command."""

    @pytest.fixture
    def previous(self):
        return Command.parse("ab =3")

    def test_numbered_reference_reuses_instance(self, previous):
        command = Command.parse("%0 >5", previous)
        assert command.filters[0] is previous.filters[0]
        assert command.filters[1] == LengthFilter(Comparison.GT, 5)
        assert command.filters[1] is not previous.filters[1]

    def test_numbered_reference_picks_index(self, previous):
        command = Command.parse("%1", previous)
        assert command.filters == (previous.filters[1],)
        assert command.filters[0] is previous.filters[1]

    def test_same_position_reference(self, previous):
        command = Command.parse("cd %%", previous)
        assert command.filters[1] is previous.filters[1]
        command = Command.parse("%% x", previous)
        assert command.filters[0] is previous.filters[0]

    def test_chains_collapse_to_original(self, previous):
        second = Command.parse(">1 %0", previous)
        third = Command.parse("%1", second)
        assert third.filters[0] is previous.filters[0]

    def test_same_filter_twice(self, previous):
        command = Command.parse("%0 %0", previous)
        assert command.filters[0] is command.filters[1]

    def test_no_previous_command(self):
        with pytest.raises(NoHistoryError):
            Command.parse("%0")
        with pytest.raises(NoHistoryError):
            Command.parse("ab %%", None)

    def test_out_of_range(self):
        previous = Command.parse("cat")
        with pytest.raises(BackReferenceRangeError):
            Command.parse("%5", previous)
        with pytest.raises(BackReferenceRangeError):
            Command.parse("%1", previous)

    def test_same_position_out_of_range(self):
        previous = Command.parse("cat")
        with pytest.raises(BackReferenceRangeError):
            Command.parse("dog %%", previous)

    def test_reference_to_empty_command(self):
        with pytest.raises(BackReferenceRangeError):
            Command.parse("%0", Command.parse(""))

    @pytest.mark.parametrize("token", ["%", "%x", "%-1", "%%%", "%1a", "%+1"])
    def test_malformed(self, token, previous):
        with pytest.raises(BackReferenceSyntaxError):
            Command.parse(token, previous)

    def test_errors_are_parse_errors(self, previous):
        for line in ("%0", "%9", "%x"):
            with pytest.raises(ParseError):
                Command.parse(line, previous if line != "%0" else None)

        assert issubclass(ParseError, ValueError)

    def test_error_message_names_token(self):
        with pytest.raises(BackReferenceRangeError, match="%5"):
            Command.parse("%5", Command.parse("cat"))

    def test_error_leaves_previous_untouched(self, previous):
        before = previous.filters
        with pytest.raises(ParseError):
            Command.parse("%0 %7", previous)
        assert previous.filters is before


# =============================================================================
# Evaluation
# =============================================================================

class RecordingFilter:
    """A stand-in filter that records every word it's asked about."""

    def __init__(self, result):
        self.result = result
        self.seen = []

    def check(self, word):
        self.seen.append(word)
        return self.result


class TestEvaluate:
    """Lazy, order-preserving evaluation over a corpus."""

    def test_end_to_end(self):
        corpus = ["cat", "cot", "dog", "catalog"]
        assert list(Command.parse("0:ca =3").evaluate(corpus)) == ["cat"]

    def test_preserves_corpus_order(self, sample_words):
        matches = list(Command.parse("c*t").evaluate(sample_words))
        assert matches == ["cat", "cot", "act", "cut"]

    def test_duplicates_kept(self):
        corpus = ["cat", "dog", "cat"]
        assert list(Command.parse("tac").evaluate(corpus)) == ["cat", "cat"]

    def test_no_filters_matches_everything(self, sample_words):
        assert list(Command.parse("").evaluate(sample_words)) == sample_words

    def test_empty_corpus(self):
        assert list(Command.parse("").evaluate([])) == []
        assert list(Command.parse("c*t >2").evaluate([])) == []

    def test_restartable(self, sample_words):
        command = Command.parse(">=5")
        first = list(command.evaluate(sample_words))
        assert first == ["catalog", "swing", "things"]
        assert list(command.evaluate(sample_words)) == first

    def test_lazy(self):
        pulled = []

        def corpus():
            for word in ["dog", "cat", "cot", "cut"]:
                pulled.append(word)
                yield word

        matches = Command.parse("c*t").evaluate(corpus())
        assert pulled == []
        assert next(matches) == "cat"
        assert pulled == ["dog", "cat"]

    def test_abandon_early(self, sample_words):
        matches = Command.parse("").evaluate(sample_words)
        assert next(matches) == "cat"
        matches.close()
        assert list(matches) == []

    def test_short_circuits(self):
        first = RecordingFilter(False)
        second = RecordingFilter(True)
        command = Command((first, second))
        assert list(command.evaluate(["cat", "dog"])) == []
        assert first.seen == ["cat", "dog"]
        assert second.seen == []

    def test_matches(self):
        command = Command.parse("c*t 1:a")
        assert command.matches("cat")
        assert not command.matches("cot")
