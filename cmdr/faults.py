"""
cmdr faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- CmdrException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages: matching faults include the ordinal position of the
  offending token (“at third position”).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.

Integration
- The grammar layer raises GrammarError directly: a broken usage string is a
  programming error and must surface at start-up.
- The matching layer raises its faults; Command routes them through trigger(),
  which renders them via rich in shell mode and raises them otherwise.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the library (stable identifiers).

    grouping (by high-level domain)
    - matching (1111x)
      • UNRECOGNIZED_TOKEN, MISSING_VALUE
    - grammar (1121x)
      • MISSING_ARGUMENT_NAME, MISSING_FLAG_NAME, MISSING_OPTION_NAME,
        DUPLICATED_NAME, DUPLICATED_SWITCH

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- matching errors (111xx) ---
    UNRECOGNIZED_TOKEN          = 11112
    MISSING_VALUE               = 11117

    # --- grammar errors (112xx) ---
    MISSING_ARGUMENT_NAME       = 11211
    MISSING_FLAG_NAME           = 11212
    MISSING_OPTION_NAME         = 11213
    DUPLICATED_NAME             = 11214
    DUPLICATED_SWITCH           = 11215

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CmdrException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", self.options.get("prog", "cmdr")), styler("prog-name"))

        code = self.options.get("code")
        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize() if code is not None else "?", styler("code")),
            " | ",
            text(self.options.get("title", type(self).__name__).title(), styler("error-title")),
            " ]"
        )
        message = text(_message(self), styler("error-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options.get("hint"), styler("hint")))

        if fancy:
            return Panel(Group(message, hint), title=header, title_align="left", width=console.width - 4)

        return Group(header, message, hint)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class GrammarError(CmdrException): ...
class UnrecognizedTokenError(CmdrException): ...
class MissingValueError(CmdrException): ...


def _message(fault, /):
    """
    return the fault message, or an empty string when it was never provided.
    """
    return fault.message if fault.message is not Unset else ""


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CmdrException).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via rich console and the process exits;
      otherwise, the exception is raised.

    typical options
    - prog, shell, fancy, colorful, title, code, hint, docs, and any other
      context the reporter may want to show (e.g., token/index).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    lookup
    - the host application may expose a __docs__ mapping in __main__ where keys
      are FaultCode instances and values are short documentation strings.
    - when not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CmdrException",
    "GrammarError",
    "UnrecognizedTokenError",
    "MissingValueError",
    "FaultCode",
    "trigger",
    "getdoc",
)
