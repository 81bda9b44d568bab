"""
Search a word list with small, composable filter expressions.
See the README.md file for more information.
"""
import atexit
import dataclasses
from dataclasses import dataclass
from enum import StrEnum
import os
from pathlib import Path
import random
import readline
import sys
import textwrap
import tomllib
from time import time
from typing import Callable, Iterable, Sequence, Tuple, Any

import art
import click
from termcolor import colored

from .commands import Command
from .filters import ALL_DIGITS, ParseError, Word


NAME = "wordfind"
VERSION = "0.2.0"
CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
HISTORY_LENGTH = 10_000
# Note that Python's readline library can be based on GNU Readline
# or the BSD Editline library, and it's not selectable. It's whatever
# has been compiled in. They use different initialization files, so we'll
# load whichever one is appropriate.
EDITLINE_BINDINGS_FILE = Path("~/.editrc").expanduser()
READLINE_BINDINGS_FILE = Path("~/.inputrc").expanduser()
DEFAULT_SCREEN_WIDTH = 79
DEFAULT_HISTORY_FILE = Path("~/.wordfind-history").expanduser()
DEFAULT_CONFIG_FILE = Path("~/.wordfind.toml").expanduser()
DEFAULT_DICTIONARY = Path("~/etc/wordfind/dict.txt").expanduser()
CONFIG_SECTION = "wordfind"
PROMPT = colored("wordfind> ", "cyan", attrs=["bold"])
INTERNAL_COMMAND_PREFIX = "."
ART_FONTS = (
    "big",
    "chunky",
    "cybermedium",
    "smslant",
    "speed",
    "standard",
    "tarty2",
    "tarty3",
)
BANNER_COLORS = (
    "cyan",
    "red",
    "blue",
    "green",
    "magenta",
)


@dataclass(frozen=True)
class Params:
    """
    Class to hold command line and configuration parameters.
    """
    dictionary: Path
    history_path: Path
    verbose: bool


class InternalCommand(StrEnum):
    """
    Commands that can be issued interactively.
    """

    EXIT = f"{INTERNAL_COMMAND_PREFIX}exit"
    HELP = f"{INTERNAL_COMMAND_PREFIX}help"
    HISTORY = f"{INTERNAL_COMMAND_PREFIX}history"


# These are (syntax, explanation) tuples, used to generate help output.
HELP: Sequence[Tuple[str, str]] = (
    (InternalCommand.EXIT.value, f"Quit {NAME}. You can also use Ctrl-D."),
    (InternalCommand.HELP.value, "This output."),
    (
        f"{InternalCommand.HISTORY.value} [<n>]",
        (
          "Show the input history. If <n> is specified, show only the last "
          "<n> history items."
        )
    ),
)

FILTER_HELP: Sequence[Tuple[str, str]] = (
    (
        "<letters>",
        (
            "Words made up only of these letters, each used at most as many "
            'times as it appears. Each "*" stands for exactly one other letter; '
            'with "*", every letter and "*" must be used.'
        ),
    ),
    (
        "=<n> <<n> >n <=<n> >=<n>",
        "Words whose length compares to <n> this way.",
    ),
    (
        "[<n>]:<letters>",
        (
            "Words with <letters> starting at position <n>, counting from 0. "
            "<n> defaults to 0."
        ),
    ),
    ("%<n>", "Reuse filter <n> (counting from 0) of the previous command."),
    ("%%", "Reuse the filter in the same position in the previous command."),
)

HELP_EPILOG = (
    f'Anything not starting with "{INTERNAL_COMMAND_PREFIX}" is a command: '
    "one or more of the filters above, separated by white space. Words must "
    "pass every filter to be shown."
)


# Will be changed to something else if -v isn't specified.
verbose_msg: Callable[[str], None] = print


match os.environ.get("COLUMNS"):
    case None:
        SCREEN_WIDTH = DEFAULT_SCREEN_WIDTH
    case s_width:
        try:
            SCREEN_WIDTH = int(s_width)
        except ValueError:
            SCREEN_WIDTH = DEFAULT_SCREEN_WIDTH
            print(
                "The COLUMNS environment variable has an invalid value of "
                f'"{s_width}". Using screen width of {DEFAULT_SCREEN_WIDTH}.'
            )


def time_op(func: Callable[..., Any], *args: Any, **kw: Any) -> Tuple[int, Any]:
    """
    Time a function call, in milliseconds.

    :param func: the function to call
    :param args: positional arguments to pass to the function
    :param kw: keyword arguments to pass to the function

    :return: a tuple of the elapsed milliseconds and the result of the call
    """
    start = time()
    result = func(*args, **kw)
    elapsed = int((time() - start) * 1000)
    return elapsed, result


def load_dictionary(dict_path: Path) -> list[Word]:
    """
    Load the dictionary: one word per line, in file order. Words are
    lower-cased here, once, so that filters never have to. Blank lines are
    skipped; duplicates are kept.

    :param dict_path: path to the dictionary file to load

    :return: the list of words

    :raises click.ClickException: if the file can't be read
    """

    def do_load() -> list[Word]:
        """
        Read the words. This is the actual workhorse function, wrapped by
        time_op() in the parent function.
        """
        words: list[Word] = []
        with open(dict_path, encoding="utf-8") as f:
            verbose_msg(f'Loading dictionary "{dict_path}".')
            for line in f:
                word = line.rstrip()
                if len(word) == 0:
                    continue

                words.append(word.lower())

        return words

    try:
        elapsed, words = time_op(do_load)
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(
            f'Error reading dictionary file "{dict_path}": {e}'
        ) from e

    verbose_msg(f"Loaded {len(words):,} words in {elapsed / 1000:.2f} second(s).")
    return words


def init_readline_history(history_path: Path) -> None:
    """
    Load the local readline history file.

    :param history_path: Path of the history file. It doesn't have to exist.
    """
    if history_path.exists():
        verbose_msg(f'Loading history from "{history_path}".')
        readline.read_history_file(str(history_path))
        # default history len is -1 (infinite), which may grow unruly

    readline.set_history_length(HISTORY_LENGTH)
    atexit.register(readline.write_history_file, str(history_path))


def init_readline_bindings() -> None:
    """
    Initialize readline bindings, including tab completion of internal
    commands.
    """
    if (readline.__doc__ is not None) and ("libedit" in readline.__doc__):
        init_file = EDITLINE_BINDINGS_FILE
        verbose_msg("Using editline (libedit).")
        completion_binding = "bind '^I' rl_complete"
    else:
        init_file = READLINE_BINDINGS_FILE
        verbose_msg("Using GNU readline.")
        completion_binding = "Control-I: rl_complete"

    if init_file.exists():
        verbose_msg(f'Loading readline bindings from "{init_file}".')
        readline.read_init_file(init_file)

    readline.parse_and_bind(completion_binding)


def complete_internal_command(line: str, text: str) -> list[str]:
    """
    Return the possible completions of "text", given the full input line.
    Only the first token of a line is ever completed, and only when it
    looks like an internal command.
    """
    commands = [cmd.value for cmd in InternalCommand]
    tokens = line.lstrip().split()
    match tokens:
        case []:
            return commands
        case [s, *_] if s in commands:
            # Already completed command. There's nothing else to complete.
            return []
        case [s] if s.startswith(INTERNAL_COMMAND_PREFIX):
            return [c for c in commands if c.startswith(text)]
        case _:
            return []


def init_readline_completion() -> None:
    """
    Initialize readline completion for "." (internal) commands.
    """

    def command_completer(text: str, state: int) -> str | None:
        options = complete_internal_command(readline.get_line_buffer(), text)
        return options[state] if state < len(options) else None

    readline.set_completer(command_completer)


def init_readline(history_path: Path) -> None:
    """
    Initializes all necessary aspects of the readline library.
    """
    init_readline_history(history_path)
    init_readline_bindings()
    init_readline_completion()


def show_help_table(entries: Sequence[Tuple[str, str]]) -> None:
    """
    Print (syntax, explanation) pairs as a two-column table, wrapping the
    explanations to the screen width.
    """
    prefix_width = max(len(syntax) for syntax, _ in entries)

    # How much room do we have left for text? Allow for separating " - ".
    separator = " - "
    text_width = SCREEN_WIDTH - len(separator) - prefix_width
    if text_width <= 0:
        # Screw it. Just pick some value.
        text_width = DEFAULT_SCREEN_WIDTH // 2

    for syntax, text in entries:
        padded_prefix = colored(syntax.ljust(prefix_width), "red", attrs=["bold"])
        text_lines = textwrap.wrap(text, width=text_width)
        print(f"{padded_prefix}{separator}{text_lines[0]}")
        for text_line in text_lines[1:]:
            padding = " " * (prefix_width + len(separator))
            print(f"{padding}{text_line}")


def show_help() -> None:
    """
    Interactive mode only: Show command and filter help.
    """
    show_help_table(HELP)
    print("")
    show_help_table(FILTER_HELP)
    print("")
    print(textwrap.fill(HELP_EPILOG, width=SCREEN_WIDTH))


def get_full_history() -> list[Tuple[int, str]]:
    """
    Return the entire readline() history as a list of (number, string) pairs.
    The number is the history item ID number, and it will be unique and in
    ascending order, starting at 1.
    """
    history_length = readline.get_current_history_length()
    # History indexes are 1-based, not 0-based
    return [
        (i, readline.get_history_item(i)) for i in range(1, history_length + 1)
    ]


def show_history(total: int = 0) -> None:
    """
    Interactive mode only: Display the history.

    :param total: Limit to number of entries to show, or 0 for all.
    """
    history_items = get_full_history()
    if total > 0:
        history_items = history_items[-total:]

    for i, line in history_items:
        print(f"{i:5d}) {line}")


def multiple_matches_header(s: str) -> str:
    """
    Return a suitable header for a command being run. Useful when emitting
    output for multiple commands.

    :param s: the command line
    :return: the header
    """
    sep = "*" * len(s)
    return f"{sep}\n{s}\n{sep}"


def show_matches(matches: Iterable[Word]) -> None:
    """
    Display matching words, one per line, in the order they arrive, followed
    by a blank line. The matches are printed as they're found, so a large
    result set never has to be held in memory.

    :param matches: the words that match
    """
    for word in matches:
        print(word)

    print()


def show_error(e: Exception) -> None:
    """
    Report a command that couldn't be parsed.
    """
    print(colored(f"Error: {e}", "red"), file=sys.stderr)
    print(file=sys.stderr)


def run_command(
    line: str, corpus: Sequence[Word], previous: Command | None
) -> Command | None:
    """
    Parse a command line and show the words that match it. The returned
    command is the one later back-references ("%n", "%%") will resolve
    against: the new command if the line parsed, or the old one, unchanged,
    if it didn't.

    :param line: the command line
    :param corpus: the loaded dictionary
    :param previous: the last successfully parsed command, if any

    :return: the command to use as the previous command from now on
    """
    try:
        command = Command.parse(line, previous)
    except ParseError as e:
        show_error(e)
        return previous

    show_matches(command.evaluate(corpus))
    return command


def handle_command(
    line: str, corpus: Sequence[Word], previous: Command | None
) -> Tuple[bool, Command | None]:
    """
    Handle one line of interactive input.

    :param line: the line of input representing the command
    :param corpus: the loaded dictionary
    :param previous: the last successfully parsed command, if any

    :return: a (exit_requested, previous_command) tuple. previous_command
             is what to pass in as "previous" next time.
    """
    tokens = line.strip().split()
    match tokens:
        case []:
            pass
        case [InternalCommand.EXIT.value]:
            return True, previous
        case [InternalCommand.EXIT.value, *_]:
            print(f"{InternalCommand.EXIT.value} takes no arguments.")
        case [InternalCommand.HELP.value]:
            show_help()
        case [InternalCommand.HELP.value, *_]:
            print(f"{InternalCommand.HELP.value} takes no arguments.")
        case [InternalCommand.HISTORY.value]:
            show_history()
        case [InternalCommand.HISTORY.value, n] if (
            ALL_DIGITS.search(n) is not None and int(n) > 0
        ):
            show_history(int(n))
        case [InternalCommand.HISTORY.value, _]:
            print(f"{InternalCommand.HISTORY.value}: Invalid number.")
        case [InternalCommand.HISTORY.value, *_]:
            print(f"{InternalCommand.HISTORY.value}: Too many parameters.")
        case [s, *_] if s.startswith(INTERNAL_COMMAND_PREFIX):
            print(f'"{s}" is an unknown command.')
        case _:
            previous = run_command(line.strip(), corpus, previous)

    return False, previous


def interactive_mode(corpus: Sequence[Word], history_path: Path) -> None:
    """
    No commands on the command line, so prompt for successive ones with
    readline. Continues prompting until Ctrl-D or InternalCommand.EXIT.

    :param corpus: the loaded dictionary
    :param history_path: path to the history file to use
    """

    def print_banner() -> None:
        """
        Print the banner using a random art font and a random terminal
        foreground color. The generated figlet has some blank lines (vertical
        padding) at the end, which we will remove.
        """
        banner: str = art.text2art(NAME, rng.choice(ART_FONTS)) # type: ignore
        banner_lines: list[str] = banner.split("\n")
        color: str = rng.choice(BANNER_COLORS)
        while (len(banner_lines) > 0) and (banner_lines[-1].strip() == ""):
            banner_lines.pop()

        print(colored("\n".join(banner_lines), color))
        print()

    init_readline(history_path)

    rng = random.SystemRandom()
    print_banner()
    print(f"Version {VERSION}")
    print(f"Searching {len(corpus):,} words.")
    print("Enter one or more filters, separated by white space.")
    print(f'Type Ctrl-D or "{InternalCommand.EXIT.value}" to exit.')
    print(f'Type "{InternalCommand.HELP.value}" for help on commands.')
    print()

    previous: Command | None = None
    while True:
        try:
            # input() automatically uses the readline library, if it's
            # been loaded.
            exit_requested, previous = handle_command(
                input(PROMPT), corpus, previous
            )
            if exit_requested:
                break

        except EOFError:
            # Ctrl-D to input()
            print()
            break

        except KeyboardInterrupt:
            # Ctrl-C abandons the current line or listing, not the session.
            print()


def once_and_done(corpus: Sequence[Word], command_lines: Sequence[str]) -> None:
    """
    Handle commands given on the command line: run each in turn, print the
    matches, and return. Back-references in one command refer to the command
    before it.

    :param corpus: the loaded dictionary
    :param command_lines: the commands to run
    """
    header_and_sep = len(command_lines) > 1
    previous: Command | None = None
    for line in command_lines:
        if header_and_sep:
            print(multiple_matches_header(line))
            print()

        previous = run_command(line, corpus, previous)


def load_config_file(config_path: Path, must_exist: bool) -> Params:
    """
    Load the configuration file, if it exists. If it doesn't exist and
    must_exist is True, raise an exception. (This is the case when the
    configuration file is specified on the command line.) Otherwise, if it
    doesn't exist, return a default Params object. If it does exist, load
    and validate the values, and return a Params object.

    :param config_path: the path to the configuration file
    :param must_exist: whether the configuration file must exist

    :return: a Params object
    """
    if not config_path.exists():
        if must_exist:
            raise click.ClickException(
                f"Configuration file {config_path} not found."
            )
        config_dict: dict[str, Any] = {CONFIG_SECTION: {}}
    else:
        try:
            with open(config_path, mode="rb") as f:
                config_dict = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise click.ClickException(
                f'Configuration file "{config_path}" is invalid: {e}'
            ) from e

    if (section := config_dict.get(CONFIG_SECTION)) is None:
        raise click.ClickException(
            f'Configuration file "{config_path}" is missing the '
            f'"{CONFIG_SECTION}" section.'
        )

    def get_path(d: dict[str, Any], key: str, default: Path) -> Path:
        """
        Get a path from a dictionary, expanding it as necessary. (e.g.,
        "~" is expanded to the current user's home directory)
        """
        path = d.get(key)
        if path is not None:
            path = Path(path).expanduser()
        else:
            path = default

        return path

    return Params(
        dictionary=get_path(section, "dictionary", DEFAULT_DICTIONARY),
        history_path=get_path(section, "history", DEFAULT_HISTORY_FILE),
        verbose=bool(section.get("verbose", False)),
    )


@click.command(
    name=NAME,
    context_settings=CLICK_CONTEXT_SETTINGS,
    epilog=f"Default configuration file: {DEFAULT_CONFIG_FILE}",
)
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to optional configuration file."
)
@click.option(
    "-d",
    "--dictionary",
    type=click.Path(exists=True, dir_okay=False),
    envvar="WORDFIND_DICTIONARY",
    help="Path to dictionary to load and use. If not specified, the "
    "WORDFIND_DICTIONARY environment variable is consulted. If that's "
    f'empty, the configuration file is used, and then "{DEFAULT_DICTIONARY}".',
)
@click.option(
    "-H",
    "--history",
    type=click.Path(dir_okay=False),
    envvar="WORDFIND_HISTORY",
    help="Path to readline history file. Ignored unless no commands are "
    "specified on the command line (i.e., ignored in non-interactive mode). If "
    "not specified on the command line or via the WORDFIND_HISTORY environment "
    "variable, the optional configuration file is used. If not specified, "
    f'"{DEFAULT_HISTORY_FILE}" is used.'
)
@click.version_option(version=VERSION)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help='Emit initialization messages (like "Loading dictionary") on startup.',
)
@click.argument("command_list", nargs=-1, metavar="[COMMAND]...")
# pylint: disable=too-many-arguments,too-many-positional-arguments
def main(
    config: str | None,
    dictionary: str | None,
    command_list: tuple[str, ...],
    history: str | None,
    verbose: bool,
) -> None:
    """
    Find the words in a dictionary that pass a set of filters. Each COMMAND
    is a single, quoted argument holding one or more filters separated by
    white space; the commands are run in order, and then wordfind exits. If
    no commands are specified on the command line, wordfind prompts
    interactively for them, using readline(). Type ".help" at the prompt for
    the filter syntax.

    The dictionary is loaded from a file, which is assumed to be a list of
    words, one per line.

    You can specify default values for the command line options via a
    configuration file. If you specify the path to the configuration file,
    it must exist. If you don't specify a configuration file, wordfind will
    look for a default configuration and load it if it exists. Environment
    variables, where applicable, override configuration file settings.
    Command line options override both environment variables and configuration
    file settings.
    """
    def apply_command_line_params(params: Params) -> Params:
        """
        Update a Params object with the command line parameters, where
        applicable, overriding the defaults.
        """
        if dictionary is not None:
            params = dataclasses.replace(
                params, dictionary=Path(dictionary).expanduser()
            )

        if history is not None:
            params = dataclasses.replace(
                params, history_path=Path(history).expanduser()
            )

        # With verbose, we only apply the command line setting if it's True.
        if verbose and not params.verbose:
            params = dataclasses.replace(params, verbose=True)

        return params

    if config is not None:
        config_must_exist = True
        config_path = Path(config)
    else:
        config_must_exist = False
        config_path = DEFAULT_CONFIG_FILE

    # Command line options override configuration file settings, if present.
    params = apply_command_line_params(
        load_config_file(config_path, config_must_exist)
    )

    # pylint: disable=global-statement
    global verbose_msg
    if params.verbose:
        verbose_msg = print
    else:
        # pylint: disable=unnecessary-lambda-assignment
        verbose_msg = lambda _: None

    corpus = load_dictionary(params.dictionary)
    if len(command_list) > 0:
        once_and_done(corpus, command_list)
    else:
        interactive_mode(corpus, params.history_path)
