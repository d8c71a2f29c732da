"""
cmdr command layer: bind a usage line once, match prompts many times.

What this module provides
- Command: holds the derived Usage and runtime options; calling it with a prompt
  returns a Result(usage, match).
- Result: (usage, match) named tuple.
- cmdr(usage, ...): factory for Command.

Prompt forms (see Command.__call__)
- Unset: read tokens from sys.argv[1:].
- str: shell-like string, split with shlex.split.
- Iterable[str]: pre-tokenized sequence.

Faults
- Grammar faults are raised while the Command is built, before any prompt is
  matched: a broken usage line is a programming error.
- Matching faults (strict mode) go through faults.trigger(): raised outside
  shell mode, rendered with rich on stderr and exiting with status 1 in shell mode.

Quick start
    from cmdr import cmdr

    hello = cmdr("hello-world <NAME>... -q, --question=<QUESTION> -v, --version -h, --help")
    usage, match = hello(["Alice", "Bob", "-q", "What?"])
    match.name      # ('Alice', 'Bob')
    match.question  # 'What?'
"""
import shlex
import sys
from collections import namedtuple
from collections.abc import Iterable

from .faults import CmdrException, trigger
from .grammar import EntityType, Usage, derive_usage
from .matching import match_input
from .utils import *

Result = namedtuple("Result", ("usage", "match"))


class Command(metaclass=EntityType):
    """
    A usage line bound to its runtime options.

    Properties
    - usage: Usage derived once at construction.
    - strict: report unrecognized tokens and missing option values.
    - shell: render faults with rich and exit instead of raising.
    - fancy: render faults inside a panel.
    - colorful: render faults with colors.

    Rendering
    - __rich__ renders the usage line, so console.print(command) prints help.
    """

    __introspectable__ = (
        "usage",
        "strict",
        "shell",
        "fancy",
        "colorful",
    )

    def __new__(cls, usage, /, *, strict=False, shell=False, fancy=False, colorful=True):
        if isinstance(usage, str):
            usage = derive_usage(usage)
        elif not isinstance(usage, Usage):
            raise TypeError(f"{cls.__typename__} 'usage' must be a string or a usage")

        self = super().__new__(cls)
        self._usage = usage
        self._strict = bool(strict)
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        return self

    def __rich__(self):
        return self._usage.__rich__()

    def __call__(self, prompt=Unset, /):
        """
        Match a prompt against the usage line.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.

        Returns
        - Result(usage, match)

        Raises
        - TypeError: when prompt is not Unset/str/Iterable[str].
        - UnrecognizedTokenError, MissingValueError: strict mode, outside shell mode.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError(f"{type(self).__typename__}() argument must be a string or an iterable of strings")
        else:
            raise TypeError(f"{type(self).__typename__}() argument must be a string or an iterable of strings")

        try:
            match = match_input(tokens, self._usage, strict=self._strict)
        except CmdrException as fault:
            trigger(
                fault,
                prog=self._usage.name,
                shell=self._shell,
                fancy=self._fancy,
                colorful=self._colorful,
            )
            raise RuntimeError("unreachable") from None

        return Result(self._usage, match)


def cmdr(usage, /, **options):
    """
    Derive the grammar of a usage line and return a Command matching prompts against it.

    Parameters
    - usage: str | Usage
    - **options: forwarded to Command (strict, shell, fancy, colorful).

    Raises
    - GrammarError: immediately, when the usage line is malformed.
    """
    return Command(usage, **options)


__all__ = (
    "Command",
    "Result",
    "cmdr",
)
