"""
Grammar module behavioral tests (usage derivation and sub-parsers).

Scope
- Validate derive_usage: program name, token priority, ordering, verbatim string.
- Validate parse_arg / parse_flag / parse_option, including GrammarError paths.
- Validate entity patterns and read-only exposure.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import sys
import unittest
from unittest import TestCase, mock

from cmdr import (
    Argument,
    Flag,
    Option,
    Usage,
    PLACEHOLDER,
    parse_arg,
    parse_flag,
    parse_option,
    derive_usage,
    GrammarError,
    FaultCode,
)

HELLO = "hello-world <NAME>... -q, --question=<QUESTION> -v, --version -h, --help"


class TestDeriveUsage(TestCase):
    """Behavioral tests for derive_usage()."""

    def testStringIsKeptVerbatim(self):
        self.assertEqual(derive_usage(HELLO).string, HELLO)
        self.assertEqual(str(derive_usage(HELLO)), HELLO)

    def testProgramName(self):
        self.assertEqual(derive_usage(HELLO).name, "hello-world")

    def testProgramNamePlaceholder(self):
        usage = derive_usage("<FILE>...")
        self.assertEqual(usage.name, PLACEHOLDER)
        self.assertEqual([argument.name for argument in usage.arguments], ["FILE"])

    def testProgramNameFromMainModule(self):
        with mock.patch.object(sys.modules["__main__"], "__prog__", "tool", create=True):
            usage = derive_usage("<FILE>...")
        self.assertEqual(usage.name, "tool")
        self.assertEqual(derive_usage("other <FILE>").name, "other")

    def testProgramNameIsNotScannedAsToken(self):
        usage = derive_usage("tool --tool")
        self.assertEqual(usage.name, "tool")
        self.assertEqual([flag.name for flag in usage.flags], ["tool"])

    def testHelloWorldGrammar(self):
        usage = derive_usage(HELLO)

        self.assertEqual(len(usage.arguments), 1)
        self.assertEqual(usage.arguments[0].name, "NAME")
        self.assertTrue(usage.arguments[0].multiple)

        self.assertEqual([flag.name for flag in usage.flags], ["version", "help"])
        self.assertEqual([flag.alias for flag in usage.flags], ["v", "h"])

        self.assertEqual(len(usage.options), 1)
        question = usage.options[0]
        self.assertEqual(question.name, "question")
        self.assertEqual(question.alias, "q")
        self.assertEqual(question.argument.name, "QUESTION")
        self.assertFalse(question.multiple)

    def testOptionsAreNotReadAsFlags(self):
        usage = derive_usage("tool -o, --output=<OUT> --level=<N> -c=<COUNT>")
        self.assertEqual(usage.flags, ())
        self.assertEqual([option.name for option in usage.options], ["output", "level", "c"])
        self.assertEqual([option.alias for option in usage.options], ["o", None, "c"])

    def testFirstAppearanceOrder(self):
        usage = derive_usage("tool -b, --beta <B> --zeta=<Z> -a, --alpha <A> --eta=<E>")
        self.assertEqual([flag.name for flag in usage.flags], ["beta", "alpha"])
        self.assertEqual([argument.name for argument in usage.arguments], ["B", "A"])
        self.assertEqual([option.name for option in usage.options], ["zeta", "eta"])

    def testNormalizedNames(self):
        usage = derive_usage("tool <QUESTION-ID> <FILE_NAME>... --dry-run --max-count=<MAX-COUNT>")
        self.assertEqual([argument.normalized_name for argument in usage.arguments], ["questionId", "fileName"])
        self.assertEqual(usage.flags[0].normalized_name, "dryRun")
        self.assertEqual(usage.options[0].normalized_name, "maxCount")

    def testBracketsAreTolerated(self):
        usage = derive_usage("tool [<FILE>...] [-v, --verbose] [-o, --output=<OUT>]")
        self.assertEqual(usage.arguments[0].name, "FILE")
        self.assertTrue(usage.arguments[0].multiple)
        self.assertEqual(usage.flags[0].name, "verbose")
        self.assertEqual(usage.options[0].name, "output")

    def testMultipleOption(self):
        usage = derive_usage("tool --tag=<TAG>...")
        self.assertTrue(usage.options[0].multiple)
        self.assertTrue(usage.options[0].argument.multiple)

    def testUnknownTextIsIgnored(self):
        usage = derive_usage("tool does things with <FILE> quietly")
        self.assertEqual([argument.name for argument in usage.arguments], ["FILE"])
        self.assertEqual(usage.flags, ())
        self.assertEqual(usage.options, ())

    def testEmptyArgumentNameRejected(self):
        with self.assertRaises(GrammarError) as context:
            derive_usage("tool <>")
        self.assertIs(context.exception.options["code"], FaultCode.MISSING_ARGUMENT_NAME)

    def testLowercaseArgumentNameRejected(self):
        with self.assertRaises(GrammarError):
            derive_usage("tool <file>")

    def testDuplicatedNameRejected(self):
        with self.assertRaises(GrammarError) as context:
            derive_usage("tool --verbose --verbose")
        self.assertIs(context.exception.options["code"], FaultCode.DUPLICATED_NAME)

    def testDuplicatedNameAcrossKindsRejected(self):
        with self.assertRaises(GrammarError):
            derive_usage("tool <FILE> --file=<PATH>")

    def testDuplicatedSwitchRejected(self):
        with self.assertRaises(GrammarError) as context:
            derive_usage("tool -v, --verbose -v, --version")
        self.assertIs(context.exception.options["code"], FaultCode.DUPLICATED_SWITCH)

    def testNonStringRejected(self):
        with self.assertRaises(TypeError):
            derive_usage(["tool"])


class TestSubParsers(TestCase):
    """Behavioral tests for parse_arg / parse_flag / parse_option."""

    def testParseArg(self):
        argument = parse_arg("<NAME>")
        self.assertIsInstance(argument, Argument)
        self.assertEqual(argument.name, "NAME")
        self.assertEqual(argument.normalized_name, "name")
        self.assertFalse(argument.multiple)

    def testParseArgMultiple(self):
        self.assertTrue(parse_arg("<NAME>...").multiple)

    def testParseArgMissingName(self):
        with self.assertRaises(GrammarError) as context:
            parse_arg("NAME")
        self.assertIn("missing argument name", str(context.exception))

    def testParseFlagBothForms(self):
        flag = parse_flag("-v, --version")
        self.assertIsInstance(flag, Flag)
        self.assertEqual(flag.name, "version")
        self.assertEqual(flag.alias, "v")
        self.assertEqual(flag.switches, ("-v", "--version"))

    def testParseFlagLongOnly(self):
        flag = parse_flag("--dry-run")
        self.assertEqual(flag.name, "dry-run")
        self.assertIsNone(flag.alias)
        self.assertEqual(flag.switches, ("--dry-run",))

    def testParseFlagAliasOnly(self):
        flag = parse_flag("-x")
        self.assertEqual(flag.name, "x")
        self.assertEqual(flag.alias, "x")

    def testParseFlagMissingName(self):
        with self.assertRaises(GrammarError) as context:
            parse_flag("--")
        self.assertIs(context.exception.options["code"], FaultCode.MISSING_FLAG_NAME)
        self.assertIn("missing flag name", str(context.exception))

    def testParseOption(self):
        option = parse_option("-q, --question=<QUESTION>")
        self.assertIsInstance(option, Option)
        self.assertEqual(option.name, "question")
        self.assertEqual(option.alias, "q")
        self.assertEqual(option.argument.name, "QUESTION")
        self.assertFalse(option.multiple)

    def testParseOptionShortOnly(self):
        option = parse_option("-n=<N>...")
        self.assertEqual(option.name, "n")
        self.assertTrue(option.multiple)

    def testParseOptionMissingName(self):
        with self.assertRaises(GrammarError) as context:
            parse_option("--=<VALUE>")
        self.assertIs(context.exception.options["code"], FaultCode.MISSING_OPTION_NAME)

    def testParseOptionMissingArgumentName(self):
        with self.assertRaises(GrammarError) as context:
            parse_option("--count=<>")
        self.assertIs(context.exception.options["code"], FaultCode.MISSING_ARGUMENT_NAME)


class TestEntities(TestCase):
    """Behavioral tests for entity patterns and immutability."""

    def testArgumentPatternAcceptsValues(self):
        argument = Argument("FILE")
        for token in ("Alice", "a.txt", "What?", "@home", "two words", '"quoted"', "42"):
            self.assertIsNotNone(argument.match(token), token)

    def testArgumentPatternRejectsSwitchesAndNoise(self):
        argument = Argument("FILE")
        for token in ("-v", "--unknown", "", "..."):
            self.assertIsNone(argument.match(token), token)

    def testFlagPatternIsExact(self):
        flag = Flag("version", "v")
        self.assertIsNotNone(flag.match("-v"))
        self.assertIsNotNone(flag.match("--version"))
        self.assertIsNone(flag.match("--verbose"))
        self.assertIsNone(flag.match("-version"))
        self.assertIsNone(flag.match("--version=1"))

    def testOptionPatternInlineValue(self):
        option = Option("question", Argument("QUESTION"), "q")
        self.assertIsNone(option.match("-q")["value"])
        self.assertEqual(option.match("--question=Why?")["value"], "Why?")
        self.assertEqual(option.match("-q=Why?")["switch"], "-q")

    def testEntitiesAreReadOnly(self):
        usage = derive_usage(HELLO)
        with self.assertRaises(AttributeError):
            usage.flags = ()
        with self.assertRaises(AttributeError):
            usage.flags[0].name = "other"
        self.assertIsInstance(usage.arguments, tuple)

    def testUsageConstructionValidatesKinds(self):
        with self.assertRaises(TypeError):
            Usage("tool", "tool", flags=[Argument("FILE")])
        with self.assertRaises(TypeError):
            Usage("tool", "tool", flags=[Option("out", Argument("OUT"))])

    def testArgumentNameValidation(self):
        with self.assertRaises(ValueError):
            Argument("file")
        with self.assertRaises(TypeError):
            Argument(1)

    def testRepr(self):
        self.assertEqual(
            repr(Flag("version", "v")),
            "flag(name='version', normalized_name='version', alias='v', switches=('-v', '--version'))",
        )

    def testRichRendering(self):
        self.assertEqual(derive_usage(HELLO).__rich__().plain, HELLO)


if __name__ == "__main__":
    unittest.main()
