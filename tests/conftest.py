"""Pytest configuration and shared fixtures."""
import pytest

import wordfind


@pytest.fixture
def sample_words():
    """A small dictionary, already lower-cased, in file order."""
    return [
        "cat",
        "cot",
        "dog",
        "catalog",
        "act",
        "cut",
        "coat",
        "swing",
        "things",
        "ring",
        "a",
        "tact",
    ]


@pytest.fixture
def dict_file(tmp_path, sample_words):
    """Write sample_words to a dictionary file, one word per line."""
    path = tmp_path / "dict.txt"
    path.write_text("\n".join(sample_words) + "\n", encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def no_user_config(tmp_path, monkeypatch):
    """Keep the user's own configuration file and environment out of tests."""
    monkeypatch.setattr(
        wordfind, "DEFAULT_CONFIG_FILE", tmp_path / "no-such-config.toml"
    )
    monkeypatch.delenv("WORDFIND_DICTIONARY", raising=False)
    monkeypatch.delenv("WORDFIND_HISTORY", raising=False)
    # main() swaps verbose_msg out depending on --verbose.
    monkeypatch.setattr(wordfind, "verbose_msg", wordfind.verbose_msg)
