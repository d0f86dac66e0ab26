#! /usr/bin/env python
import doctest
import math
import os
import tempfile
import unittest
from abc import ABC, abstractmethod

from scrap import (
    AmbiguousCommandError,
    Capability,
    Cmd,
    CmdGroup,
    Evaluator,
    FlagEvaluationError,
    Left,
    OneOf,
    Result,
    Right,
    Span,
    Value,
    ValueEvaluationError,
    bool_value,
    boolean_toggle,
    commands,
    evaluators,
    f32_value,
    f64_value,
    file_value,
    help,
    i8_value,
    i32_value,
    i64_value,
    join,
    one_of,
    optional,
    result,
    span,
    store_false,
    store_true,
    string_value,
    u8_value,
    unused_args,
    value,
    value_types,
    with_choices,
    with_default,
    with_open,
)


def load_tests(_, tests, __):
    for mod in [
        span,
        value,
        result,
        value_types,
        help,
        evaluators,
        commands,
    ]:
        tests.addTests(doctest.DocTestSuite(mod))
    return tests


AS_ROOT = hasattr(os, "geteuid") and os.geteuid() == 0


class MonadLawTester(ABC):
    @abstractmethod
    def assertEqual(self, a, b):
        raise NotImplementedError

    def f1(self, x):
        return self.m(x + 1)

    def f2(self, x):
        return self.m(x * 2)

    @staticmethod
    @abstractmethod
    def m(a):
        raise NotImplementedError

    @staticmethod
    @abstractmethod
    def return_(a):
        raise NotImplementedError

    @staticmethod
    def unwrapped_values():
        return [0, 1, 7]

    @staticmethod
    @abstractmethod
    def wrapped_values():
        raise NotImplementedError

    def test_law1(self):
        for a in self.unwrapped_values():
            x1 = self.return_(a) >= self.f1
            x2 = self.f1(a)
            self.assertEqual(self.unwrap(x1), self.unwrap(x2))

    def test_law2(self):
        for p in self.wrapped_values():
            a = p >= self.return_
            self.assertEqual(self.unwrap(a), self.unwrap(p))

    def test_law3(self):
        for p in self.wrapped_values():
            x1 = p >= (lambda a: self.f1(a) >= self.f2)
            x2 = (p >= self.f1) >= self.f2
            self.assertEqual(self.unwrap(x1), self.unwrap(x2))

    @staticmethod
    @abstractmethod
    def unwrap(x):
        raise NotImplementedError


class TestValue(MonadLawTester, unittest.TestCase):
    @staticmethod
    def m(a):
        return Value(Span((abs(a),)), a)

    @staticmethod
    def return_(a):
        return Value.return_(a)

    @staticmethod
    def wrapped_values():
        return [Value(Span((1, 2)), 3), Value.return_(0), Value(Span((4, 1, 4)), 5)]

    @staticmethod
    def unwrap(x):
        return x


class TestResult(MonadLawTester, unittest.TestCase):
    @staticmethod
    def m(a):
        return Result.return_(a)

    @staticmethod
    def return_(a):
        return Result.return_(a)

    @staticmethod
    def wrapped_values():
        return [
            Result.return_(2),
            Result(ValueEvaluationError("bad value", value="x")),
            Result.zero(),
        ]

    @staticmethod
    def unwrap(x):
        return x


class TestEvaluator(MonadLawTester, unittest.TestCase):
    TOKENS = ["prog", "-n", "3"]

    @staticmethod
    def m(a):
        return Evaluator.return_(a)

    @staticmethod
    def return_(a):
        return Evaluator.return_(a)

    @staticmethod
    def wrapped_values():
        return [
            i32_value("number", "n"),
            i32_value("missing", "m").optional().with_default(7),
            i32_value("missing", "m"),
        ]

    def unwrap(self, x):
        return x.evaluate(self.TOKENS)


class TestScenarios(unittest.TestCase):
    def test_join_two_string_flags(self):
        p = join(string_value("name", "n"), string_value("log-level", "l"))
        v = p.evaluate(["prog", "-n", "foo", "-l", "info"]).unwrap()
        self.assertEqual(v.value, ("foo", "info"))
        self.assertEqual(set(v.span), {1, 2, 3, 4})

    def test_boolean_toggle(self):
        v = boolean_toggle("debug", "d", toggle=True).evaluate(["prog", "--debug"])
        self.assertEqual(v.unwrap(), Value(Span((1,)), True))

    def test_default_when_absent(self):
        p = with_default("foo", optional(string_value("name", "n")))
        self.assertEqual(p.evaluate(["prog"]).unwrap(), Value(Span(), "foo"))

    def test_choices_rejects(self):
        p = with_choices(["info", "warn"], string_value("log-level", "l"))
        error = p.evaluate(["prog", "-l", "trace"]).get
        self.assertIsInstance(error, ValueEvaluationError)
        self.assertEqual(error.value, "trace")

    def test_integer_rejects_text(self):
        error = i32_value("timeout", "t").evaluate(["prog", "-t", "not-a-number"]).get
        self.assertIsInstance(error, ValueEvaluationError)
        self.assertIn("--timeout", str(error))


class TestTerminals(unittest.TestCase):
    def test_missing_flag(self):
        error = string_value("name", "n").evaluate(["prog"]).get
        self.assertIsInstance(error, FlagEvaluationError)
        self.assertEqual(error.name, "name")

    def test_missing_value_token(self):
        error = i32_value("timeout", "t").evaluate(["prog", "--timeout"]).get
        self.assertIsInstance(error, FlagEvaluationError)
        self.assertEqual(error.name, "timeout")

    def test_value_token_is_not_interpreted(self):
        v = string_value("name", "n").evaluate(["prog", "-n", "-l"]).unwrap()
        self.assertEqual(v, Value(Span((1, 2)), "-l"))

    def test_first_occurrence_wins(self):
        v = store_false("quiet", "q").evaluate(["prog", "a", "-q", "--quiet"]).unwrap()
        self.assertEqual(v, Value(Span((2,)), False))

    def test_short_code_disabled(self):
        p = string_value("name")
        self.assertFalse(p.evaluate(["prog", "-n", "x"]).is_ok)
        self.assertEqual(p.evaluate(["prog", "--name", "x"]).unwrap().value, "x")

    def test_flag_names_checked(self):
        with self.assertRaises(RuntimeError):
            string_value("")
        with self.assertRaises(RuntimeError):
            store_true("name", "nm")

    def test_integer_ranges(self):
        def parse(evaluator, token):
            return evaluator.evaluate(["prog", "-x", token])

        self.assertEqual(parse(u8_value("x", "x"), "255").unwrap().value, 255)
        self.assertEqual(parse(u8_value("x", "x"), "+7").unwrap().value, 7)
        self.assertEqual(parse(i8_value("x", "x"), "-128").unwrap().value, -128)
        self.assertEqual(
            parse(i64_value("x", "x"), str(2**63 - 1)).unwrap().value, 2**63 - 1
        )
        for evaluator, token in [
            (u8_value("x", "x"), "256"),
            (u8_value("x", "x"), "-1"),
            (i8_value("x", "x"), "-129"),
            (i64_value("x", "x"), str(2**63)),
            (i32_value("x", "x"), "1_000"),
            (i32_value("x", "x"), " 1"),
            (i32_value("x", "x"), "1.0"),
            (i32_value("x", "x"), ""),
        ]:
            with self.subTest(token=token):
                self.assertIsInstance(parse(evaluator, token).get, ValueEvaluationError)

    def test_floats(self):
        def parse(evaluator, token):
            return evaluator.evaluate(["prog", "-x", token])

        self.assertEqual(parse(f64_value("x", "x"), "2.5").unwrap().value, 2.5)
        self.assertEqual(parse(f64_value("x", "x"), "-inf").unwrap().value, -math.inf)
        self.assertTrue(math.isnan(parse(f64_value("x", "x"), "nan").unwrap().value))
        self.assertEqual(parse(f64_value("x", "x"), "1e39").unwrap().value, 1e39)
        for evaluator, token in [
            (f32_value("x", "x"), "1e39"),
            (f32_value("x", "x"), "3.5e38"),
            (f64_value("x", "x"), "1_0"),
            (f64_value("x", "x"), "1.0 "),
            (f64_value("x", "x"), "one"),
        ]:
            with self.subTest(token=token):
                self.assertIsInstance(parse(evaluator, token).get, ValueEvaluationError)

    def test_bool_value(self):
        p = bool_value("cache", "c")
        self.assertIs(p.evaluate(["prog", "-c", "true"]).unwrap().value, True)
        self.assertIs(p.evaluate(["prog", "-c", "false"]).unwrap().value, False)
        self.assertIsInstance(
            p.evaluate(["prog", "-c", "True"]).get, ValueEvaluationError
        )


class TestFileValue(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.directory.name, "config.txt")
        with open(self.path, "w") as f:
            f.write("hello")

    def tearDown(self):
        self.directory.cleanup()

    def test_existing_file(self):
        v = file_value("config", "c").evaluate(["prog", "-c", self.path]).unwrap()
        self.assertEqual(v, Value(Span((1, 2)), self.path))

    def test_missing_file(self):
        missing = os.path.join(self.directory.name, "missing.txt")
        error = file_value("config", "c").evaluate(["prog", "-c", missing]).get
        self.assertIsInstance(error, ValueEvaluationError)
        self.assertEqual(error.value, missing)

    def test_directory_is_rejected(self):
        error = file_value("config", "c").evaluate(["prog", "-c", self.directory.name]).get
        self.assertIsInstance(error, ValueEvaluationError)

    def test_new_file_allowed(self):
        new = os.path.join(self.directory.name, "new.txt")
        p = file_value("out", "o", readable=False, writable=True, must_exist=False)
        self.assertEqual(p.evaluate(["prog", "-o", new]).unwrap().value, new)
        self.assertFalse(os.path.exists(new))

    def test_open_reads(self):
        p = with_open(file_value("config", "c"))
        v = p.evaluate(["prog", "-c", self.path]).unwrap()
        self.assertEqual(v.span, Span((1, 2)))
        with v.value as f:
            self.assertEqual(f.read(), "hello")

    def test_open_creates(self):
        new = os.path.join(self.directory.name, "new.txt")
        p = file_value("out", "o", readable=False, writable=True, must_exist=False)
        with p.with_open().evaluate(["prog", "-o", new]).unwrap().value as f:
            f.write("created")
        with open(new) as f:
            self.assertEqual(f.read(), "created")

    def test_open_does_not_truncate(self):
        p = file_value("out", "o", readable=False, writable=True)
        with p.with_open().evaluate(["prog", "-o", self.path]).unwrap().value as f:
            f.write("J")
        with open(self.path) as f:
            self.assertEqual(f.read(), "Jello")

    def test_open_logs(self):
        p = file_value("config", "c").with_open()
        with self.assertLogs("scrap.evaluators", level="DEBUG"):
            p.evaluate(["prog", "-c", self.path]).unwrap().value.close()

    def test_open_requires_file_value(self):
        with self.assertRaises(RuntimeError):
            string_value("config", "c").with_open()
        with self.assertRaises(RuntimeError):
            file_value("config", "c").optional().with_open()

    def test_name_too_long(self):
        error = file_value("config", "c").evaluate(["prog", "-c", "a" * 5000]).get
        self.assertIsInstance(error, ValueEvaluationError)

    def test_missing_parent_is_not_writable(self):
        new = os.path.join(self.directory.name, "missing", "new.txt")
        p = file_value("out", "o", readable=False, writable=True, must_exist=False)
        error = p.evaluate(["prog", "-o", new]).get
        self.assertIsInstance(error, ValueEvaluationError)
        self.assertIn("not writable", str(error))

    @unittest.skipIf(AS_ROOT, "permission bits do not apply to root")
    def test_unreadable_file(self):
        os.chmod(self.path, 0o200)
        error = file_value("config", "c").evaluate(["prog", "-c", self.path]).get
        self.assertIsInstance(error, ValueEvaluationError)
        self.assertIn("not readable", str(error))

    @unittest.skipIf(AS_ROOT, "permission bits do not apply to root")
    def test_unwritable_file(self):
        os.chmod(self.path, 0o400)
        p = file_value("config", "c", writable=True)
        error = p.evaluate(["prog", "-c", self.path]).get
        self.assertIsInstance(error, ValueEvaluationError)
        self.assertIn("not writable", str(error))

    @unittest.skipIf(AS_ROOT, "permission bits do not apply to root")
    def test_unwritable_directory(self):
        locked = os.path.join(self.directory.name, "locked")
        os.mkdir(locked, 0o500)
        p = file_value("out", "o", readable=False, writable=True, must_exist=False)
        error = p.evaluate(["prog", "-o", os.path.join(locked, "new.txt")]).get
        self.assertIsInstance(error, ValueEvaluationError)

    def test_open_failure(self):
        under_file = os.path.join(self.path, "new.txt")
        p = file_value("out", "o", readable=False, writable=True, must_exist=False)
        self.assertTrue(p.evaluate(["prog", "-o", under_file]).is_ok)
        error = p.with_open().evaluate(["prog", "-o", under_file]).get
        self.assertIsInstance(error, FlagEvaluationError)
        self.assertEqual(error.name, "out")


class TestCombinators(unittest.TestCase):
    def test_alternative_returns_first_error(self):
        p = string_value("a") | string_value("b")
        error = p.evaluate(["prog"]).get
        self.assertIsInstance(error, FlagEvaluationError)
        self.assertEqual(error.name, "a")
        self.assertEqual(p.evaluate(["prog", "--b", "x"]).unwrap().value, "x")

    def test_optional_discards_error(self):
        p = i32_value("count", "c").optional()
        self.assertEqual(p.evaluate(["prog", "-c", "x"]).unwrap(), Value(Span(), None))

    def test_join_nests_left(self):
        p = string_value("a") + string_value("b") + string_value("c")
        v = p.evaluate(["prog", "--c", "3", "--a", "1", "--b", "2"]).unwrap()
        self.assertEqual(v.value, (("1", "2"), "3"))
        self.assertEqual(v.span, Span((3, 4, 5, 6, 1, 2)))

    def test_join_short_circuits_on_right(self):
        p = string_value("a") + i32_value("b")
        error = p.evaluate(["prog", "--a", "1", "--b", "x"]).get
        self.assertIsInstance(error, ValueEvaluationError)

    def test_choices_keep_span(self):
        p = string_value("level", "l").with_choices(["info", "warn"])
        self.assertEqual(
            p.evaluate(["prog", "x", "-l", "info"]).unwrap(), Value(Span((2, 3)), "info")
        )

    def test_map(self):
        p = i32_value("seconds", "s").map(lambda s: s * 1000)
        self.assertEqual(
            p.evaluate(["prog", "-s", "2"]).unwrap(), Value(Span((1, 2)), 2000)
        )

    def test_capabilities(self):
        self.assertEqual(store_true("a").capabilities, {Capability.FLAG})
        self.assertIn(Capability.OPENABLE, file_value("f").capabilities)
        self.assertIn(Capability.DEFAULTABLE, store_true("a").optional().capabilities)
        self.assertNotIn(
            Capability.DEFAULTABLE,
            store_true("a").optional().with_default(False).capabilities,
        )
        self.assertIn(Capability.FLAG, (store_true("a") + store_true("b")).capabilities)
        self.assertEqual(Evaluator.return_(1).capabilities, frozenset())

    def test_default_requires_optional(self):
        with self.assertRaises(RuntimeError):
            string_value("name", "n").with_default("foo")
        with self.assertRaises(RuntimeError):
            string_value("name", "n").optional().with_default("a").with_default("b")

    def test_choices_below_default(self):
        p = (
            string_value("log-level", "l")
            .optional()
            .with_choices(["info", "warn"])
            .with_default("info")
        )
        self.assertEqual(p.evaluate(["prog"]).unwrap(), Value(Span(), "info"))
        self.assertEqual(p.evaluate(["prog", "-l", "warn"]).unwrap().value, "warn")
        self.assertIsInstance(
            p.evaluate(["prog", "-l", "trace"]).get, ValueEvaluationError
        )
        self.assertIsInstance(
            Evaluator.return_(None).with_choices(["info"]).evaluate(["prog"]).get,
            ValueEvaluationError,
        )


class TestCommands(unittest.TestCase):
    def setUp(self):
        self.calls = []

        def record(*args):
            self.calls.append(args)
            return len(self.calls)

        self.record = record

    def test_matches_file_name(self):
        v = Cmd("prog").evaluate(["/usr/local/bin/prog"]).unwrap()
        self.assertEqual(v, Value(Span((0,)), None))

    def test_mismatch(self):
        self.assertIsInstance(
            Cmd("prog").evaluate(["other"]).get, AmbiguousCommandError
        )
        self.assertIsInstance(Cmd("prog").evaluate([]).get, AmbiguousCommandError)

    def test_flag_error_passes_through(self):
        cmd = Cmd("prog").with_flag(string_value("name", "n"))
        self.assertIsInstance(cmd.evaluate(["prog"]).get, FlagEvaluationError)

    def test_flags_nest_left(self):
        cmd = (
            Cmd("prog")
            .with_flag(string_value("a"))
            .with_flag(string_value("b"))
            .with_flag(string_value("c"))
        )
        v = cmd.evaluate(["prog", "--c", "3", "--a", "1", "--b", "2"]).unwrap()
        self.assertEqual(v.value, (("1", "2"), "3"))
        self.assertEqual(v.span, Span((0, 3, 4, 5, 6, 1, 2)))

    def test_with_flag_requires_flag(self):
        with self.assertRaises(RuntimeError):
            Cmd("prog").with_flag(Evaluator.return_(1))

    def test_builders_do_not_mutate(self):
        cmd = Cmd("prog")
        described = cmd.with_description("d").with_author("a").with_version("1.0")
        self.assertEqual(cmd.description, "")
        self.assertEqual(
            (described.description, described.author, described.version),
            ("d", "a", "1.0"),
        )

    def test_match_is_logged(self):
        with self.assertLogs("scrap.commands", level="DEBUG") as logs:
            Cmd("prog").evaluate(["prog"])
        self.assertIn("prog", logs.output[0])

    def test_one_of_exclusive(self):
        p = Cmd("add") ^ Cmd("commit")
        self.assertEqual(p.evaluate(["add"]).unwrap(), Value(Span((0,)), Left(None)))
        self.assertEqual(
            p.evaluate(["commit"]).unwrap(), Value(Span((0,)), Right(None))
        )
        error = p.evaluate(["push"]).get
        self.assertIsInstance(error, AmbiguousCommandError)
        self.assertIn("Expected command 'add'", str(error))
        self.assertIn("Expected command 'commit'", str(error))
        self.assertIsInstance(
            (Cmd("add") ^ Cmd("add")).evaluate(["add"]).get, AmbiguousCommandError
        )

    def test_one_of_requires_commands(self):
        with self.assertRaises(RuntimeError):
            OneOf(Cmd("a"), string_value("x"))
        with self.assertRaises(RuntimeError):
            Cmd("a") ^ store_true("x")

    def test_one_of_nests_left(self):
        p = one_of(Cmd("a"), Cmd("b"), Cmd("c"))
        self.assertEqual(p.evaluate(["a"]).unwrap().value, Left(Left(None)))
        self.assertEqual(p.evaluate(["b"]).unwrap().value, Left(Right(None)))
        self.assertEqual(p.evaluate(["c"]).unwrap().value, Right(None))

    def test_dispatch(self):
        p = Cmd("add").with_handler(self.record) ^ (
            Cmd("commit").with_flag(string_value("message", "m")).with_handler(self.record)
        )
        tokens = ["commit", "-m", "msg", "extra"]
        v = p.evaluate(tokens).unwrap()
        self.assertEqual(p.dispatch(v), 1)
        args = unused_args(tokens, v.span)
        p.dispatch_with_args(args, v)
        self.assertEqual(self.calls, [("msg",), (["extra"], "msg")])

    def test_dispatch_with_helpstring(self):
        commit = (
            Cmd("commit")
            .with_description("Record changes.")
            .with_flag(string_value("message", "m"))
            .with_handler(self.record)
        )
        p = Cmd("add").with_handler(self.record) ^ commit
        tokens = ["commit", "-m", "msg"]
        v = p.evaluate(tokens).unwrap()
        p.dispatch_with_helpstring(v)
        p.dispatch_with_helpstring_and_args([], v)
        expected = str(commit.help())
        self.assertEqual(self.calls, [(expected, "msg"), (expected, [], "msg")])

    def test_dispatch_without_handler(self):
        cmd = Cmd("prog")
        with self.assertRaises(RuntimeError):
            cmd.dispatch(cmd.evaluate(["prog"]).unwrap())

    def test_group(self):
        group = (
            CmdGroup("git")
            .with_command(Cmd("add").with_handler(self.record))
            .with_command(
                Cmd("commit")
                .with_flag(string_value("message", "m"))
                .with_handler(self.record)
            )
        )
        tokens = ["/usr/bin/git", "commit", "-m", "msg", "extra"]
        v = group.evaluate(tokens).unwrap()
        self.assertEqual(v, Value(Span((0, 1, 2, 3)), Right("msg")))
        group.dispatch_with_args(unused_args(tokens, v.span), v)
        self.assertEqual(self.calls, [(["extra"], "msg")])
        self.assertIsInstance(
            group.evaluate(["svn", "commit", "-m", "msg"]).get, AmbiguousCommandError
        )
        self.assertIsInstance(group.evaluate(["git"]).get, AmbiguousCommandError)

    def test_group_requires_commands(self):
        with self.assertRaises(RuntimeError):
            CmdGroup("git").evaluate(["git"])
        with self.assertRaises(RuntimeError):
            CmdGroup("git").with_command(store_true("x"))

    def test_unused_args(self):
        cmd = Cmd("prog").with_flag(string_value("name", "n"))
        tokens = ["prog", "extra", "-n", "foo", "--other"]
        v = cmd.evaluate(tokens).unwrap()
        self.assertEqual(unused_args(tokens, v.span), ["extra", "--other"])


class TestHelp(unittest.TestCase):
    def test_cmd_help(self):
        cmd = (
            Cmd("test")
            .with_description("a test cmd")
            .with_flag(string_value("name", "n", "A name.").optional().with_default("foo"))
        )
        self.assertEqual(
            str(cmd.help()),
            "test:\na test cmd\n--name, -n\tA name.\t[(optional), (Default: 'foo')]",
        )

    def test_cmd_help_with_metadata(self):
        cmd = (
            Cmd("test")
            .with_description("a test cmd")
            .with_author("someone")
            .with_version("1.0")
            .with_flag(store_true("a"))
            .with_flag(store_true("b", "b", "B."))
        )
        self.assertEqual(
            str(cmd.help()), "test 1.0:\na test cmd\nsomeone\n\t--a\n\t--b, -b\tB."
        )

    def test_choices_help(self):
        p = string_value("level", "l").with_choices(["info", "warn"])
        self.assertEqual(str(p.help()), "--level, -l\t[(choices: info, warn)]")

    def test_short_help(self):
        self.assertEqual((store_true("a") | store_true("b")).short_help(), "[--a | --b]")
        p = Cmd("add") ^ Cmd("commit").with_flag(string_value("message", "m"))
        self.assertEqual(p.short_help(), "[add | commit --message MESSAGE]")
        group = CmdGroup("git").with_command(Cmd("add")).with_command(Cmd("rm"))
        self.assertEqual(group.short_help(), "git [add | rm]")


if __name__ == "__main__":
    unittest.main()
