r"""
cmdr grammar: derive a typed grammar from a single usage line.

Overview
- Entities
  • Argument: positional, value-bearing parameter written "<NAME>" (optionally "<NAME>...").
  • Flag: named, presence-only switch written "-x, --long", "--long" or "-x".
  • Option: a flag carrying one embedded Argument, written "-x, --long=<VAL>",
    "--long=<VAL>" or "-x=<VAL>" (optionally suffixed "...").
  • Usage: the verbatim usage line, the program name and the three ordered
    collections of entities.

- Sub-parsers
  • parse_arg(token) / parse_flag(token) / parse_option(token): build one entity
    from one grammar token, raising GrammarError when a required name is missing.

- Derivation
  • derive_usage(string): strip the leading program name, then run an explicit
    tokenizer over the remainder. At every token boundary the option shape is
    tried first, then the flag shape, then the argument shape; the option shape
    must win because "-q, --question=<QUESTION>" starts with a flag-shaped prefix.

Matching patterns
- Each entity carries a compiled pattern and a match(token) helper used by the
  matcher with fullmatch semantics (a token is recognized as a whole).
  • Argument: a literal value that is not switch-shaped and holds at least one
    letter, digit, whitespace, hyphen, question mark or at-sign.
  • Flag: one of its switches ("-v" or "--version").
  • Option: one of its switches, optionally followed by "=value" in the same token.

Immutability
- Entities and Usage expose their fields through read-only properties (see
  utils.mirror); collections are handed out as tuples.

Quick example:
    >>> usage = derive_usage("hello-world <NAME>... -q, --question=<QUESTION> -v, --version")
    >>> [argument.normalized_name for argument in usage.arguments]
    ['name']
    >>> usage.options[0].switches
    ('-q', '--question')
"""
import functools
import logging
import operator
import re
from collections import defaultdict

from rich.text import Text

from .faults import FaultCode, GrammarError, getdoc
from .utils import *

logger = logging.getLogger(__name__)

PLACEHOLDER = "program"
"""
Program name used when the usage line does not start with one.
"""

_NAME = re.compile(r"[A-Z][A-Z\d_-]*")
_ALIAS = re.compile(r"(?<![\w-])-(?P<alias>[a-z])(?![\w-])")
_IDENTIFIER = r"[a-z](?:[a-z\d-]*[a-z\d])?"
_LONG = re.compile(rf"(?<=--)(?P<name>{_IDENTIFIER})")
_BRACKETS = re.compile(r"<(?P<inside>[^<>]*)>")
_PROGRAM = re.compile(r"\s*(?P<name>[a-z][a-z_-]*)(?=\s|$)")

# A literal value: never switch-shaped, and holding at least one letter, digit,
# whitespace, hyphen, question mark or at-sign. Quotes are kept as written.
_VALUE = r"(?!-)(?=.*(?:[^\W_]|[\s?@-]))(?P<value>.+)"

# token shapes, in priority order (see derive_usage)
_SHAPE_ARGUMENT = r"<[^<>\s]*>(?:\.\.\.)?"
_SHAPE_SWITCH = rf"-[a-z], --{_IDENTIFIER}|--{_IDENTIFIER}|-[a-z]"
_SHAPE_END = r"(?=[\s\])|]|$)"

_TOKENS = (
    ("option", re.compile(rf"(?:{_SHAPE_SWITCH})={_SHAPE_ARGUMENT}{_SHAPE_END}")),
    ("flag", re.compile(rf"(?:{_SHAPE_SWITCH}){_SHAPE_END}")),
    ("argument", re.compile(rf"{_SHAPE_ARGUMENT}{_SHAPE_END}")),
)
_BOUNDARIES = frozenset(" \t\r\n[(|")


class EntityType(type):
    """
    Metaclass that turns grammar classes into introspectable, read-only records.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      backed by "_<name>" (see mirror()).
    - Provide stable, readable __repr__/__rich_repr__ implementations.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - flag(name='version', normalized_name='version', alias='v', ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Argument(metaclass=EntityType):
    """
    Positional, value-bearing parameter.

    Properties
    - name: identifier as written between the brackets (e.g. "NAME").
    - normalized_name: camelCase result key (e.g. "name").
    - multiple: True when written with "...", the argument then collects every
      matching positional token in input order.
    - pattern: compiled value pattern (see match()).
    """

    __introspectable__ = (
        "name",
        "normalized_name",
        "multiple",
        "pattern",
    )
    __displayable__ = (
        "name",
        "normalized_name",
        "multiple",
    )

    def __new__(cls, name, /, multiple=False):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not _NAME.fullmatch(name):
            raise ValueError(f"{cls.__typename__} 'name' must be an uppercase identifier")

        self = super().__new__(cls)
        self._name = name
        self._normalized_name = normalize(name)
        self._multiple = bool(multiple)
        self._pattern = re.compile(_VALUE, re.DOTALL)
        return self

    def match(self, token, /):
        """
        Return the re.Match when the whole token is a permissible value, else None.
        """
        return self._pattern.fullmatch(token)


class Flag(metaclass=EntityType):
    """
    Named, presence-only switch.

    Properties
    - name: long name, or the alias when the flag has no long form.
    - normalized_name: camelCase result key.
    - alias: single lowercase letter or None.
    - switches: accepted spellings, short form first ("-v", "--version").
    - pattern: compiled switch pattern (see match()).
    """

    __introspectable__ = (
        "name",
        "normalized_name",
        "alias",
        "switches",
        "pattern",
    )
    __displayable__ = (
        "name",
        "normalized_name",
        "alias",
        "switches",
    )
    __template__ = "(?P<switch>{switches})"

    def __new__(cls, name, /, alias=None):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not re.fullmatch(_IDENTIFIER, name):
            raise ValueError(f"{cls.__typename__} 'name' must be a lowercase identifier")
        if alias is not None and (not isinstance(alias, str) or not re.fullmatch(r"[a-z]", alias)):
            raise ValueError(f"{cls.__typename__} 'alias' must be a single lowercase letter")

        self = super().__new__(cls)
        self._name = name
        self._normalized_name = normalize(name)
        self._alias = alias
        self._switches = ("-" + alias, "--" + name) if alias else ("--" + name,)
        self._pattern = re.compile(
            cls.__template__.format(switches="|".join(map(re.escape, self._switches))),
            re.DOTALL,
        )
        return self

    def match(self, token, /):
        """
        Return the re.Match when the whole token is one of the switches, else None.
        """
        return self._pattern.fullmatch(token)


class Option(Flag):
    """
    Named switch carrying one embedded Argument.

    The value is either attached in the same token ("--question=foo", exposed
    as the "value" group of the match) or read from the next input token by
    the matcher. multiple mirrors the embedded argument.
    """

    __introspectable__ = (
        "name",
        "normalized_name",
        "alias",
        "switches",
        "argument",
        "multiple",
        "pattern",
    )
    __displayable__ = (
        "name",
        "normalized_name",
        "alias",
        "switches",
        "argument",
    )
    __template__ = "(?P<switch>{switches})(?:=(?P<value>.*))?"

    def __new__(cls, name, argument, /, alias=None):
        if not isinstance(argument, Argument):
            raise TypeError(f"{cls.__typename__} 'argument' must be an argument")
        self = super().__new__(cls, name, alias)
        self._argument = argument
        self._multiple = argument.multiple
        return self


class Usage(metaclass=EntityType):
    """
    Full grammar of one program.

    Properties
    - string: the usage line exactly as given (help output echoes it verbatim).
    - name: program name; when the line does not start with one, __prog__ from
      __main__ or PLACEHOLDER.
    - arguments / flags / options: tuples in first-appearance order.

    Construction rejects two entities sharing a normalized name, and two
    switches sharing a spelling, with a GrammarError.
    """

    __introspectable__ = (
        "string",
        "name",
        "arguments",
        "flags",
        "options",
    )
    __displayable__ = (
        "name",
        "arguments",
        "flags",
        "options",
    )

    def __new__(cls, string, name=PLACEHOLDER, /, arguments=(), flags=(), options=()):
        if not isinstance(string, str):
            raise TypeError(f"{cls.__typename__} 'string' must be a string")
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")

        arguments, flags, options = tuple(arguments), tuple(flags), tuple(options)
        if not all(isinstance(argument, Argument) for argument in arguments):
            raise TypeError(f"{cls.__typename__} 'arguments' must be an iterable of arguments")
        if not all(isinstance(flag, Flag) and not isinstance(flag, Option) for flag in flags):
            raise TypeError(f"{cls.__typename__} 'flags' must be an iterable of flags")
        if not all(isinstance(option, Option) for option in options):
            raise TypeError(f"{cls.__typename__} 'options' must be an iterable of options")

        keys = {}
        switches = {}
        for entity in (*flags, *options, *arguments):
            if (other := keys.setdefault(entity.normalized_name, entity)) is not entity:
                raise GrammarError(
                    "%s %r and %s %r share the result key %r" % (
                        type(other).__typename__, other.name,
                        type(entity).__typename__, entity.name,
                        entity.normalized_name,
                    ),
                    title="duplicated name",
                    code=FaultCode.DUPLICATED_NAME,
                    hint="rename one of them in the usage line",
                    name=entity.normalized_name,
                    docs=getdoc(FaultCode.DUPLICATED_NAME),
                )
            for switch in getattr(entity, "switches", ()):
                if switches.setdefault(switch, entity) is not entity:
                    raise GrammarError(
                        "switch %r is declared more than once" % switch,
                        title="duplicated switch",
                        code=FaultCode.DUPLICATED_SWITCH,
                        hint="give each flag and option its own alias",
                        switch=switch,
                        docs=getdoc(FaultCode.DUPLICATED_SWITCH),
                    )

        self = super().__new__(cls)
        self._string = string
        self._name = name
        self._arguments = arguments
        self._flags = flags
        self._options = options
        return self

    def __str__(self):
        return self._string

    def __rich__(self):
        """
        Render the usage line verbatim, highlighting program name, switches and arguments.

        Styles can be overridden through a __styles__ mapping in __main__.
        """
        styles = defaultdict(str, {
            "usage-prog": "bold #E6E6F0",
            "usage-switch": "bold #00E5FF",
            "usage-argument": "italic #FFB400",
        } | getattr(__import__("__main__"), "__styles__", {}))

        text = Text(self._string)
        if self._name != PLACEHOLDER:
            text.highlight_regex(rf"^\s*{re.escape(self._name)}", styles["usage-prog"])
        text.highlight_regex(rf"(?<![\w-])--?{_IDENTIFIER}", styles["usage-switch"])
        text.highlight_regex(_SHAPE_ARGUMENT, styles["usage-argument"])
        return text


def _switch_names(token, /):
    """
    Extract (alias, name) from a flag- or option-shaped token.

    The alias is the letter of a standalone "-x" short form; the name is the run
    after "--". Without a long form the alias doubles as the name.
    """
    alias = match["alias"] if (match := _ALIAS.search(token)) else None
    name = match["name"] if (match := _LONG.search(token)) else alias
    return alias, name


def parse_arg(token, /):
    """
    Build an Argument from an argument-shaped token ("<NAME>" or "<NAME>...").

    Raises
    - GrammarError: when the brackets are missing or do not hold a valid name.
    """
    if not isinstance(token, str):
        raise TypeError("parse_arg() argument must be a string")

    match = _BRACKETS.search(token)
    if not match or not _NAME.fullmatch(match["inside"]):
        raise GrammarError(
            "missing argument name in %r" % token,
            title="missing argument name",
            code=FaultCode.MISSING_ARGUMENT_NAME,
            hint="write arguments as uppercase names between brackets (for example: <FILE>)",
            token=token,
            docs=getdoc(FaultCode.MISSING_ARGUMENT_NAME),
        )
    return Argument(match["inside"], token.endswith("..."))


def parse_flag(token, /):
    """
    Build a Flag from a flag-shaped token ("-v, --version", "--version" or "-v").

    Raises
    - GrammarError: when the token has neither an alias nor a long name.
    """
    if not isinstance(token, str):
        raise TypeError("parse_flag() argument must be a string")

    alias, name = _switch_names(token)
    if not name:
        raise GrammarError(
            "missing flag name in %r" % token,
            title="missing flag name",
            code=FaultCode.MISSING_FLAG_NAME,
            hint="write flags as -x, --long-name (either form may be omitted, not both)",
            token=token,
            docs=getdoc(FaultCode.MISSING_FLAG_NAME),
        )
    return Flag(name, alias)


def parse_option(token, /):
    """
    Build an Option from an option-shaped token ("-q, --question=<QUESTION>").

    The switch part is read like a flag; the bracketed part is handed to
    parse_arg() to obtain the embedded argument.

    Raises
    - GrammarError: when the switch part has no name, or the argument part is malformed.
    """
    if not isinstance(token, str):
        raise TypeError("parse_option() argument must be a string")

    alias, name = _switch_names(token.partition("=")[0])
    if not name:
        raise GrammarError(
            "missing option name in %r" % token,
            title="missing option name",
            code=FaultCode.MISSING_OPTION_NAME,
            hint="write options as -x, --long-name=<VALUE> (either switch may be omitted, not both)",
            token=token,
            docs=getdoc(FaultCode.MISSING_OPTION_NAME),
        )
    return Option(name, parse_arg(token), alias)


_PARSERS = {
    "argument": parse_arg,
    "flag": parse_flag,
    "option": parse_option,
}


def _tokenize(text, /):
    """
    Yield (kind, token) pairs for every grammar token in text, left to right.

    A token may only start at a boundary (start of text, whitespace, "[", "(" or
    "|"). At each boundary the shapes in _TOKENS are tried in priority order and
    the scan resumes after the matched span; characters that start no token are
    skipped one by one.
    """
    index = 0
    while index < len(text):
        if index and text[index - 1] not in _BOUNDARIES:
            index += 1
            continue
        for kind, pattern in _TOKENS:
            if match := pattern.match(text, index):
                yield kind, match[0]
                index = match.end()
                break
        else:
            index += 1


def derive_usage(string, /):
    """
    Derive the Usage grammar of a usage line.

    Steps
    - program name: a leading lowercase run ([a-z][a-z_-]*) followed by whitespace
      or the end of the line. When absent, __prog__ from __main__ is used, else
      PLACEHOLDER. A leading name has its first occurrence removed before
      scanning so it cannot be read as a grammar token.
    - tokens: option, then flag, then argument shapes (see _tokenize), each
      dispatched to its sub-parser and collected in first-appearance order.

    Raises
    - TypeError: when string is not a string.
    - GrammarError: when a token lacks a required name, or names/switches collide.
    """
    if not isinstance(string, str):
        raise TypeError("derive_usage() argument must be a string")

    if match := _PROGRAM.match(string):
        name = match["name"]
        remainder = string.replace(name, "", 1)
    else:
        name = getattr(__import__("__main__"), "__prog__", PLACEHOLDER)
        remainder = string

    collected = defaultdict(list)
    for kind, token in _tokenize(remainder):
        collected[kind].append(_PARSERS[kind](token))

    usage = Usage(
        string,
        name,
        arguments=collected["argument"],
        flags=collected["flag"],
        options=collected["option"],
    )
    logger.debug(
        "derived usage for %r: %d argument(s), %d flag(s), %d option(s)",
        name, len(usage.arguments), len(usage.flags), len(usage.options),
    )
    return usage


__all__ = (
    "Argument",
    "Flag",
    "Option",
    "Usage",
    "PLACEHOLDER",
    "parse_arg",
    "parse_flag",
    "parse_option",
    "derive_usage",
)
