"""
Tests for the minilang runtime (interpreter, values, scopes, built-ins).
"""

import io
import textwrap

import pytest

from minilang import (
    tokenize, parse,
    Interpreter, ExecutionResult, compile_and_run,
    Settings, ValueType, Leaf, FnDef,
)
from minilang.runtime import (
    Value, NOTHING, BuiltinFn, UserFn,
    int_val, string_val, bool_val, fn_val,
    Scope, CallFrame,
    BuiltinFunction, BuiltinRegistry, get_builtin_registry, call_builtin,
)
from minilang.errors import (
    ArityMismatchError,
    AssertionFailedError,
    CallDepthExceededError,
    DivisionByZeroError,
    InvalidArgumentError,
    InvalidExpressionError,
    NotCallableError,
    ReturnOutsideFunctionError,
    TypeMismatchError,
    UndefinedFunctionError,
    UndefinedVariableError,
    UnknownBuiltinError,
    UnknownTypeError,
)
from minilang.tokens import type_token


STRICT = Settings()
CHECKED = Settings(check_types=True)


def run_source(source, settings=STRICT, registry=None):
    """Run a whole program and return the interpreter."""
    interpreter = Interpreter(
        parse(tokenize(textwrap.dedent(source))), settings=settings, registry=registry
    )
    interpreter.run()
    return interpreter


def evaluate(source, settings=STRICT, registry=None):
    """Run all but the last statement, then return the value of the last one."""
    stmts = parse(tokenize(textwrap.dedent(source)))
    interpreter = Interpreter(stmts[:-1], settings=settings, registry=registry)
    interpreter.run()
    return interpreter.interpret_expr(stmts[-1], interpreter.scope)


# --- Value Tests ---

class TestValues:
    """Test runtime value wrappers."""

    def test_int_value(self):
        """Test integer value creation."""
        v = int_val(42)
        assert v.data == 42
        assert v.type == ValueType.INT

    def test_string_value(self):
        """Test string value creation."""
        v = string_val("hello")
        assert v.data == "hello"
        assert v.type == ValueType.STRING

    def test_bool_value(self):
        """Test boolean value creation."""
        assert bool_val(True).data is True
        assert bool_val(False).type == ValueType.BOOL

    def test_values_are_immutable(self):
        """Values cannot be changed once created."""
        v = int_val(1)
        with pytest.raises(AttributeError):
            v.data = 2

    def test_equality_includes_type(self):
        """Values of different types never compare equal."""
        assert int_val(1) == Value(1, ValueType.INT)
        assert bool_val(True) != int_val(1)

    def test_display(self):
        """Printed forms of each kind of value."""
        assert int_val(-3).display() == "-3"
        assert string_val("hi").display() == "hi"
        assert bool_val(False).display() == "false"
        assert NOTHING.display() == "Nothing"
        assert fn_val(BuiltinFn("print", ValueType.NOTHING)).display() == "<fn print>"

    def test_user_fn_arity(self):
        """Arity is the number of declared parameters."""
        fn = UserFn("f", {(0, "a"): ValueType.INT, (1, "b"): ValueType.BOOL})
        assert fn.arity == 2
        assert fn.return_type == ValueType.NOTHING


# --- Scope Tests ---

class TestScope:
    """Test scopes and call frames."""

    def test_set_and_get(self):
        """Bindings can be stored and read back."""
        scope = Scope()
        scope.set("x", int_val(1))
        assert scope.get("x") == int_val(1)
        assert "x" in scope
        assert scope.get("missing") is None

    def test_rebinding_replaces(self):
        """Setting a bound name replaces its value."""
        scope = Scope()
        scope.set("x", int_val(1))
        scope.set("x", int_val(2))
        assert scope.get("x") == int_val(2)
        assert len(scope) == 1

    def test_snapshot_is_independent(self):
        """Changes to a snapshot never reach the scope it was taken from, or vice versa."""
        scope = Scope()
        scope.set("x", int_val(1))
        copy = scope.snapshot("call:f")
        copy.set("x", int_val(2))
        copy.set("y", int_val(3))
        scope.set("z", int_val(4))
        assert scope.get("x") == int_val(1)
        assert "y" not in scope
        assert "z" not in copy
        assert copy.name == "call:f"

    def test_call_frame_return_signal(self):
        """A frame starts without a return and records the signalled value."""
        frame = CallFrame("f")
        assert frame.should_return is False
        assert frame.return_value == NOTHING
        frame.signal_return(int_val(7))
        assert frame.should_return is True
        assert frame.return_value == int_val(7)


# --- Literal and Assignment Tests ---

class TestLiteralsAndAssignment:
    """Test evaluation of leaves and ':='."""

    @pytest.mark.parametrize("source,expected", [
        ("5;", int_val(5)),
        ("-5;", int_val(-5)),
        ('"text";', string_val("text")),
        ("'single';", string_val("single")),
        ("true;", bool_val(True)),
        ("false;", bool_val(False)),
    ])
    def test_literals(self, source, expected):
        """Literals evaluate to themselves."""
        assert evaluate(source) == expected

    def test_assignment_binds(self):
        """x := 5; then x gives 5."""
        assert evaluate("x := 5; x;") == int_val(5)

    def test_rebinding(self):
        """A later assignment replaces the earlier value."""
        assert evaluate("x := 5; x := 6; x;") == int_val(6)

    def test_assignment_produces_nothing(self):
        """The assignment itself evaluates to Nothing."""
        assert evaluate("x := 5;") == NOTHING

    def test_assignment_copies_value(self):
        """Binding one name to another copies the value."""
        interp = run_source("a := 1; b := a; a := 2;")
        assert interp.scope.get("b") == int_val(1)

    def test_undefined_variable(self):
        """Reading an unbound name fails."""
        with pytest.raises(UndefinedVariableError) as exc:
            evaluate("nope;")
        assert exc.value.name == "nope"
        assert exc.value.code == "E401"


# --- Arithmetic Tests ---

class TestArithmetic:
    """Test arithmetic operators."""

    def test_int_addition(self):
        assert evaluate("2 + 3;") == int_val(5)

    def test_string_concatenation(self):
        """'+' concatenates two strings."""
        assert evaluate('a := "a"; a + "b";') == string_val("ab")

    def test_mixed_addition(self):
        """int + string is a type mismatch."""
        with pytest.raises(TypeMismatchError) as exc:
            evaluate('2 + "b";')
        assert exc.value.operation == "'+'"
        assert exc.value.got == (ValueType.INT, ValueType.STRING)

    def test_subtraction_and_multiplication(self):
        assert evaluate("10 - 4;") == int_val(6)
        assert evaluate("6 * 7;") == int_val(42)

    def test_right_grouping(self):
        """2 - 3 - 4 evaluates as 2 - (3 - 4)."""
        assert evaluate("2 - 3 - 4;") == int_val(3)

    def test_no_precedence(self):
        """2 * 3 + 4 evaluates as 2 * (3 + 4)."""
        assert evaluate("2 * 3 + 4;") == int_val(14)

    @pytest.mark.parametrize("source,expected", [
        ("7 / 2;", 3),
        ("-7 / 2;", -3),
        ("7 / -2;", -3),
        ("-7 / -2;", 3),
        ("6 / 3;", 2),
    ])
    def test_division_truncates_toward_zero(self, source, expected):
        """Integer division rounds toward zero."""
        assert evaluate(source) == int_val(expected)

    def test_division_by_zero(self):
        """5 / 0 fails."""
        with pytest.raises(DivisionByZeroError):
            evaluate("5 / 0;")

    def test_string_subtraction(self):
        """Only '+' accepts strings."""
        with pytest.raises(TypeMismatchError):
            evaluate('s := "ab"; s - "b";')

    def test_bool_arithmetic(self):
        """Booleans are not numbers."""
        with pytest.raises(TypeMismatchError) as exc:
            evaluate("b := true; b * 2;")
        assert exc.value.got == (ValueType.BOOL, ValueType.INT)

    def test_large_integers(self):
        """Integer results are not limited to 64 bits."""
        assert evaluate("9223372036854775807 + 1;") == int_val(9223372036854775808)


# --- Comparison Tests ---

class TestComparison:
    """Test '==' and '!='."""

    def test_equal_ints(self):
        assert evaluate("3 == 3;") == bool_val(True)
        assert evaluate("3 == 4;") == bool_val(False)

    def test_not_equal(self):
        assert evaluate("3 != 4;") == bool_val(True)
        assert evaluate("3 != 3;") == bool_val(False)

    def test_strings(self):
        assert evaluate('s := "a"; s == "a";') == bool_val(True)
        assert evaluate('s := "a"; s != "b";') == bool_val(True)

    def test_bools(self):
        assert evaluate("t := true; t == false;") == bool_val(False)

    def test_mixed_types(self):
        """3 == "3" is a type mismatch, not false."""
        with pytest.raises(TypeMismatchError):
            evaluate('3 == "3";')

    def test_functions_are_not_comparable(self):
        """Function values cannot be compared."""
        with pytest.raises(TypeMismatchError):
            evaluate("print == print;")


# --- Function Tests ---

class TestFunctions:
    """Test user-defined functions."""

    ADD = "func add(int a, int b) -> int { return a + b; }\n"

    def test_definition_binds_function(self):
        """A definition binds a function value and produces Nothing."""
        interp = run_source(self.ADD)
        value = interp.scope.get("add")
        assert value.type == ValueType.FN
        assert isinstance(value.data, UserFn)
        assert value.data.arity == 2
        assert value.data.return_type == ValueType.INT

    def test_call(self):
        """add(2, 3) gives 5."""
        assert evaluate(self.ADD + "add(2, 3);") == int_val(5)

    def test_arguments_are_expressions(self):
        assert evaluate(self.ADD + "x := 4; add(x, add(1, 1));") == int_val(6)

    def test_arity_mismatch(self):
        """Calling with one argument fails."""
        with pytest.raises(ArityMismatchError) as exc:
            evaluate(self.ADD + "add(1);")
        assert exc.value.name == "add"
        assert exc.value.expected == 2
        assert exc.value.got == 1

    def test_too_many_arguments(self):
        with pytest.raises(ArityMismatchError):
            evaluate(self.ADD + "add(1, 2, 3);")

    def test_undefined_function(self):
        """foo() fails when nothing is bound to foo."""
        with pytest.raises(UndefinedFunctionError) as exc:
            evaluate("foo();")
        assert exc.value.name == "foo"

    def test_not_callable(self):
        """Calling a non-function value fails."""
        with pytest.raises(NotCallableError) as exc:
            evaluate("x := 1; x();")
        assert exc.value.got == ValueType.INT

    def test_annotations_not_enforced(self):
        """Argument annotations do not restrict what may be passed."""
        assert evaluate(self.ADD + 'add("a", "b");') == string_val("ab")

    def test_declared_return_type_not_enforced(self):
        """The returned value is the call's result whatever was declared."""
        assert evaluate('func f() -> int { return "s"; } f();') == string_val("s")

    def test_missing_return_with_declared_type(self):
        """Falling off the end of a typed function gives Nothing."""
        assert evaluate("func f() -> int { x := 1; } f();") == NOTHING

    def test_function_as_argument(self):
        """A function value can be passed and called through a parameter."""
        source = """
            func one() -> int { return 1; }
            func call(int g) -> int { return g(); }
            call(one);
        """
        assert evaluate(source) == int_val(1)

    def test_checked_argument_types(self):
        """With type checking on, arguments must match their annotations."""
        with pytest.raises(TypeMismatchError) as exc:
            evaluate(self.ADD + 'add(1, "two");', settings=CHECKED)
        assert exc.value.got == (ValueType.STRING,)

    def test_checked_return_type(self):
        """With type checking on, the result must match the declared type."""
        with pytest.raises(TypeMismatchError):
            evaluate('func f() -> int { return "s"; } f();', settings=CHECKED)
        with pytest.raises(TypeMismatchError):
            evaluate("func f() -> int { x := 1; } f();", settings=CHECKED)

    def test_checked_undeclared_return_type(self):
        """Functions without a return clause may return anything."""
        assert evaluate("func f() { return 3; } f();", settings=CHECKED) == int_val(3)

    def test_no_return_gives_nothing(self):
        """A function without return produces Nothing."""
        assert evaluate("func f() { x := 1; } f();") == NOTHING

    def test_empty_body(self):
        assert evaluate("func f() { } f();") == NOTHING

    def test_return_stops_body(self, capsys):
        """Statements after return are not evaluated."""
        result = evaluate('func f() -> int { return 1; print("after"); } f();')
        assert result == int_val(1)
        assert capsys.readouterr().out == ""

    def test_return_in_argument_stops_call(self, capsys):
        """A return inside a call argument ends the function before the call runs."""
        result = evaluate('func f() -> int { print(return 1, print("b")); } f();')
        assert result == int_val(1)
        assert capsys.readouterr().out == ""

    def test_return_in_operand(self, capsys):
        """A return on the right of an operator ends the function."""
        source = """
            func f() -> int { x := 1 + return 2; print("after"); }
            f();
        """
        assert evaluate(source) == int_val(2)
        assert capsys.readouterr().out == ""

    def test_first_return_wins(self):
        """A nested return is the result even when an outer return follows."""
        assert evaluate("func f() -> int { return 1 + return 2; } f();") == int_val(2)

    def test_return_in_assignment(self):
        """A return on the right of ':=' ends the function."""
        source = """
            func f() -> int { y := return 5; return y; }
            f();
        """
        assert evaluate(source) == int_val(5)

    def test_return_outside_function(self):
        """return at top level fails."""
        with pytest.raises(ReturnOutsideFunctionError):
            run_source("return 1;")

    def test_functions_are_values(self):
        """A function can be bound to another name and called through it."""
        assert evaluate(self.ADD + "plus := add; plus(1, 2);") == int_val(3)

    def test_redefinition_replaces(self):
        source = """
            func f() -> int { return 1; }
            func f() -> int { return 2; }
            f();
        """
        assert evaluate(source) == int_val(2)

    def test_call_before_later_definition(self):
        """Names are looked up when the call runs, not when it is defined."""
        source = """
            func a() -> int { return b(); }
            func b() -> int { return 2; }
            a();
        """
        assert evaluate(source) == int_val(2)

    def test_nothing_parameter(self, capsys):
        """_none parameters accept Nothing; arguments run left to right."""
        run_source('func f(_none a, _none b) { } f(print("a"), print("b"));')
        assert capsys.readouterr().out == "a\nb\n"

    def test_unknown_annotation_type(self):
        """An annotation outside the known types fails when defined."""
        fn_def = FnDef("f", {(0, "x"): Leaf(type_token("float"))}, [], "_none")
        with pytest.raises(UnknownTypeError) as exc:
            Interpreter([fn_def], settings=STRICT).run()
        assert exc.value.name == "float"

    def test_call_depth_limit(self):
        """Unbounded recursion stops at the configured depth."""
        with pytest.raises(CallDepthExceededError) as exc:
            run_source("func loop() { loop(); } loop();", settings=Settings(max_call_depth=25))
        assert exc.value.limit == 25

    def test_frames_unwound_after_error(self):
        """A failing call leaves no active frames behind."""
        interp = Interpreter(
            parse(tokenize("func f() -> int { return 1 / 0; } f();")), settings=STRICT
        )
        with pytest.raises(DivisionByZeroError):
            interp.run()
        assert interp.call_depth == 0


# --- Scoping Tests ---

class TestScoping:
    """Test call-time scope snapshots (no closures)."""

    def test_callee_sees_caller_bindings_at_call_time(self):
        """A global rebound after definition is seen with its new value."""
        source = """
            x := 1;
            func show() -> int { return x; }
            x := 2;
            show();
        """
        assert evaluate(source) == int_val(2)

    def test_callee_sees_caller_locals(self):
        """Bindings made inside the caller are visible to its callees."""
        source = """
            func inner() -> int { return z; }
            func outer() -> int { z := 7; return inner(); }
            outer();
        """
        assert evaluate(source) == int_val(7)

    def test_callee_bindings_do_not_leak(self):
        """Assignments inside a call vanish when it returns."""
        with pytest.raises(UndefinedVariableError):
            evaluate("func setter() { y := 5; } setter(); y;")

    def test_callee_cannot_change_caller(self):
        source = """
            x := 1;
            func change() { x := 99; }
            change();
            x;
        """
        assert evaluate(source) == int_val(1)

    def test_parameters_shadow(self):
        """Parameters hide caller bindings of the same name."""
        interp = run_source("a := 100; func f(int a) -> int { return a; } r := f(1);")
        assert interp.scope.get("r") == int_val(1)
        assert interp.scope.get("a") == int_val(100)


# --- Error Leaf Tests ---

class TestErrorLeaves:
    """Test evaluation of the parser's error leaves."""

    def test_error_leaf_is_fatal_by_default(self):
        with pytest.raises(InvalidExpressionError) as exc:
            run_source("+;")
        assert exc.value.found == "+"

    def test_permissive_error_leaf(self):
        """With permissive leaves an error leaf is Nothing."""
        permissive = Settings(permissive_leaves=True)
        interp = run_source("x := ); y := 1;", settings=permissive)
        assert interp.scope.get("x") == NOTHING
        assert interp.scope.get("y") == int_val(1)

    def test_permissive_from_environment(self, monkeypatch):
        """The environment switch reaches interpreters built without settings."""
        monkeypatch.setenv("MINILANG_PERMISSIVE_LEAVES", "1")
        interp = Interpreter(parse(tokenize("x := );")))
        interp.run()
        assert interp.scope.get("x") == NOTHING


# --- Builtin Tests ---

class TestBuiltins:
    """Test built-in functions."""

    def test_global_registry_is_shared(self):
        assert get_builtin_registry() is get_builtin_registry()

    def test_builtins_in_toplevel_scope(self):
        """Every registered built-in is bound at start-up."""
        interp = run_source("")
        for name in get_builtin_registry().names:
            value = interp.scope.get(name)
            assert value.type == ValueType.FN
            assert isinstance(value.data, BuiltinFn)

    def test_print(self, capsys):
        """print writes its arguments separated by spaces."""
        run_source('print("a", 1, true);')
        assert capsys.readouterr().out == "a 1 true\n"

    def test_print_no_arguments(self, capsys):
        run_source("print();")
        assert capsys.readouterr().out == "\n"

    def test_print_returns_nothing(self, capsys):
        run_source("x := print(); print(x, print);")
        assert capsys.readouterr().out == "\nNothing <fn print>\n"

    def test_print_to_registry_output(self):
        """A registry can redirect print to any stream."""
        out = io.StringIO()
        run_source("func add(int a, int b) -> int { return a + b; } print(add(2, 3));",
                   registry=BuiltinRegistry(output=out))
        assert out.getvalue() == "5\n"

    def test_to_string(self):
        assert evaluate("to_string(12);") == string_val("12")
        assert evaluate("to_string(false);") == string_val("false")

    def test_len(self):
        assert evaluate('len("abc");') == int_val(3)

    def test_len_wrong_type(self):
        with pytest.raises(TypeMismatchError):
            evaluate("len(3);")

    def test_parse_int(self):
        assert evaluate('parse_int("42");') == int_val(42)
        assert evaluate('parse_int(" -7 ");') == int_val(-7)

    def test_parse_int_invalid(self):
        with pytest.raises(InvalidArgumentError) as exc:
            evaluate('parse_int("4x");')
        assert exc.value.function == "parse_int"

    def test_type_of(self):
        assert evaluate("type_of(1);") == string_val("int")
        assert evaluate('type_of("s");') == string_val("string")
        assert evaluate("type_of(print);") == string_val("fn")
        assert evaluate("type_of(print());") == string_val("_none")

    def test_assert(self):
        run_source("assert(1 == 1);")
        with pytest.raises(AssertionFailedError):
            run_source("assert(1 == 2);")

    def test_builtin_arity(self):
        with pytest.raises(ArityMismatchError) as exc:
            evaluate('len("a", "b");')
        assert exc.value.expected == 1
        assert exc.value.got == 2

    def test_builtin_name_can_be_rebound(self):
        """Built-in names are ordinary bindings."""
        with pytest.raises(NotCallableError):
            run_source("print := 1; print(1);")

    def test_register_custom_builtin(self):
        registry = BuiltinRegistry()
        registry.register(BuiltinFunction(
            "double", ValueType.INT, lambda v: int_val(v.data * 2), [ValueType.INT],
        ))
        assert evaluate("double(21);", registry=registry) == int_val(42)

    def test_builtin_result_type_checked(self):
        """A built-in must produce its declared return type."""
        registry = BuiltinRegistry()
        registry.register(BuiltinFunction(
            "broken", ValueType.INT, lambda: string_val("oops"), [],
        ))
        with pytest.raises(TypeMismatchError):
            evaluate("broken();", registry=registry)

    def test_unknown_builtin(self):
        """Handles with no implementation are rejected."""
        with pytest.raises(UnknownBuiltinError):
            BuiltinRegistry().call_builtin("missing", [], ValueType.NOTHING)

    def test_call_builtin_function(self):
        """Module-level call_builtin uses the global registry."""
        assert call_builtin("len", [string_val("four")], ValueType.INT) == int_val(4)


# --- Settings Tests ---

class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings == Settings()
        assert settings.permissive_leaves is False
        assert settings.check_types is False

    def test_values_from_mapping(self):
        settings = Settings.from_env({
            "MINILANG_MAX_CALL_DEPTH": "12",
            "MINILANG_PERMISSIVE_LEAVES": "yes",
            "MINILANG_CHECK_TYPES": "on",
            "MINILANG_LOG_LEVEL": "debug",
        })
        assert settings.max_call_depth == 12
        assert settings.permissive_leaves is True
        assert settings.check_types is True
        assert settings.log_level == "DEBUG"

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("MINILANG_MAX_CALL_DEPTH", "7")
        assert Settings.from_env().max_call_depth == 7

    @pytest.mark.parametrize("name,value", [
        ("MINILANG_MAX_CALL_DEPTH", "lots"),
        ("MINILANG_MAX_CALL_DEPTH", "0"),
        ("MINILANG_PERMISSIVE_LEAVES", "maybe"),
        ("MINILANG_CHECK_TYPES", "strict"),
        ("MINILANG_LOG_LEVEL", "LOUD"),
    ])
    def test_malformed_values(self, name, value):
        """Malformed values are rejected with the variable's name."""
        with pytest.raises(ValueError, match=name):
            Settings.from_env({name: value})


# --- compile_and_run Tests ---

class TestCompileAndRun:
    """Test the source-to-result convenience API."""

    def test_success(self, capsys):
        result = compile_and_run("x := 2; print(x * 21);", settings=STRICT)
        assert isinstance(result, ExecutionResult)
        assert result.success
        assert result.error is None
        assert result.error_message is None
        assert result.scope.get("x") == int_val(2)
        assert capsys.readouterr().out == "42\n"

    def test_runtime_error(self):
        """Evaluation errors come back with the source line attached."""
        result = compile_and_run("x := 1;\ny := x / 0;", filename="div.ml", settings=STRICT)
        assert not result.success
        assert isinstance(result.error, DivisionByZeroError)
        assert result.interpreter is not None
        assert result.scope.get("x") == int_val(1)
        assert "error[E405]" in result.error_message
        assert "div.ml:2:" in result.error_message
        assert "y := x / 0;" in result.error_message

    def test_parse_error(self):
        """Parse failures leave no interpreter."""
        result = compile_and_run("x := 1", settings=STRICT)
        assert not result.success
        assert result.interpreter is None
        assert result.scope is None
        assert result.error.code == "E102"

    def test_lexer_error(self):
        result = compile_and_run("x := 1 @ 2;", settings=STRICT)
        assert not result.success
        assert result.error.code == "E001"
