"""
cmdr matching: classify runtime tokens against a Usage grammar.

What this module provides
- Match: read-only mapping from every declared normalized name to its value,
  with attribute access (match.help) for convenience.
- match_input(input, usage, *, strict=False): build a Match from a token sequence.

Algorithm
- Defaults: False for flags, None for single options/arguments, () for
  multiple options/arguments.
- Tokens are walked by position. Each token is classified with a fixed
  priority: option, then flag, then argument; within a category the
  first-declared entity wins.
  • option: the value is attached ("--question=foo") or read from the next token
    by position. A consumed value position is remembered and never re-classified,
    so two options with identical values behave independently.
  • flag: the field becomes True.
  • argument: multiple arguments append, single ones keep the last value.
- Tokens matching nothing are dropped.

Strict mode
- strict=True turns the two lenient paths into faults:
  • an unrecognized token raises UnrecognizedTokenError (with a "did you mean" hint);
  • an option without a value raises MissingValueError.
"""
import difflib
import itertools
import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from .faults import FaultCode, UnrecognizedTokenError, MissingValueError, getdoc
from .grammar import Usage
from .utils import ordinal

logger = logging.getLogger(__name__)


class Match(Mapping):
    """
    Read-only result of matching tokens against a Usage.

    Keys are the camelCase normalized names of every declared flag, option and
    argument; values are bool (flags), str | None (single entries) or
    tuple[str, ...] (multiple entries). Fields are also reachable as attributes.

    Two matches compare equal when they hold the same fields (Mapping equality).
    """
    __slots__ = ("_fields",)

    def __init__(self, fields=(), /):
        object.__setattr__(self, "_fields", MappingProxyType({
            key: tuple(value) if isinstance(value, list) else value for key, value in dict(fields).items()
        }))

    def __getitem__(self, key, /):
        return self._fields[key]

    def __iter__(self):
        return iter(self._fields)

    def __len__(self):
        return len(self._fields)

    def __getattr__(self, name, /):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(f"match has no field {name!r}") from None

    def __setattr__(self, name, value, /):
        raise AttributeError("match is read-only")

    def __delattr__(self, name, /):
        raise AttributeError("match is read-only")

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        return type(self), (dict(self._fields),)

    def __repr__(self):
        return "match(%s)" % ", ".join("%s=%r" % item for item in self._fields.items())

    def __rich_repr__(self):
        yield from self._fields.items()


def _defaults(usage, /):
    fields = {}
    for flag in usage.flags:
        fields[flag.normalized_name] = False
    for entity in itertools.chain(usage.options, usage.arguments):
        fields[entity.normalized_name] = [] if entity.multiple else None
    return fields


def _find(entities, token, /):
    """
    Return (entity, re.Match) for the first entity recognizing token, else (None, None).
    """
    for entity in entities:
        if match := entity.match(token):
            return entity, match
    return None, None


def _store(fields, entity, value, /):
    if entity.multiple:
        fields[entity.normalized_name].append(value)
    else:
        fields[entity.normalized_name] = value


def _value(match, tokens, index, /):
    """
    Resolve the value of an option recognized at tokens[index].

    A non-empty attached value ("--offset=-5") is taken verbatim, like a value
    read from the next token. An empty one ("--question=") leaves the switch
    bare, so the next token is read instead.

    Returns (value, consumed) where consumed is the index of the token read as
    the value, or None when the value was attached. value is None when no value
    exists.
    """
    if value := match["value"]:
        return value, None
    if index + 1 < len(tokens):
        return tokens[index + 1], index + 1
    return None, None


def _missing(option, token, index, /):
    return MissingValueError(
        "option %r at %s position has no value" % (token, ordinal(index + 1)),
        title="missing option value",
        code=FaultCode.MISSING_VALUE,
        hint="pass a value after a space or '=' (for example: %s=<%s>)" % (
            option.switches[-1], option.argument.name
        ),
        token=token,
        index=index + 1,
        docs=getdoc(FaultCode.MISSING_VALUE),
    )


def _unrecognized(usage, token, index, /):
    switches = [switch for entity in itertools.chain(usage.flags, usage.options) for switch in entity.switches]
    suggestions = difflib.get_close_matches(token.partition("=")[0], switches, 5)
    try:
        hint = "did you mean %r?" % suggestions[0]
    except IndexError:
        hint = "remove it, valid forms are: %s" % usage.string
    return UnrecognizedTokenError(
        "unrecognized token %r at %s position" % (token, ordinal(index + 1)),
        title="unrecognized token",
        code=FaultCode.UNRECOGNIZED_TOKEN,
        hint=hint,
        token=token,
        index=index + 1,
        suggestions=suggestions,
        docs=getdoc(FaultCode.UNRECOGNIZED_TOKEN),
    )


def match_input(input, usage, /, *, strict=False):
    """
    Match a sequence of raw tokens against a Usage.

    Parameters
    - input: Iterable[str]
      the tokens to classify (typically sys.argv[1:]); a plain string is rejected.
    - usage: Usage
      the grammar produced by derive_usage().
    - strict: bool (keyword-only)
      report unrecognized tokens and missing option values instead of dropping them.

    Returns
    - Match: a fresh, read-only result. The function is pure: the same usage and
      input always produce equal matches.

    Raises
    - TypeError: on a non-Usage grammar or a non-iterable / non-string input.
    - UnrecognizedTokenError, MissingValueError: strict mode only.
    """
    if not isinstance(usage, Usage):
        raise TypeError("match_input() second argument must be a usage")
    if isinstance(input, str) or not isinstance(input, Iterable):
        raise TypeError("match_input() first argument must be an iterable of strings")

    tokens = tuple(input)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("match_input() first argument must be an iterable of strings")

    fields = _defaults(usage)
    consumed = set()

    for index, token in enumerate(tokens):
        if index in consumed:
            continue

        option, match = _find(usage.options, token)
        if option:
            value, position = _value(match, tokens, index)
            if value is None:
                if strict:
                    raise _missing(option, token, index)
                logger.debug("dropping option %r at position %d: no value", token, index + 1)
                continue
            if position is not None:
                consumed.add(position)
            _store(fields, option, value)
            continue

        flag, _ = _find(usage.flags, token)
        if flag:
            fields[flag.normalized_name] = True
            continue

        argument, _ = _find(usage.arguments, token)
        if argument:
            _store(fields, argument, token)
            continue

        if strict:
            raise _unrecognized(usage, token, index)
        logger.debug("dropping unrecognized token %r at position %d", token, index + 1)

    return Match(fields)


__all__ = (
    "Match",
    "match_input",
)
