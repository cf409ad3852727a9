"""
Tests for statement evaluation, type inference and retrieval.
"""

import io
import logging
import textwrap

import pytest

from factconf import (
    Interpreter, InterpreterSettings, Slot, FactoryRegistry, Param, ConstructionFailure,
    ConstructionResolver, object_val,
    TypeError, RetrievalTypeError, UnresolvedReferenceError, ConstructionError,
    ParserError, LexerError, ObjectType, SequenceType, DOUBLE, INT,
)

from models import PerceptronModel, Ensemble, RegularizedModel, L2


def fetch(interp, name, expected=None):
    slot = Slot(expected)
    assert interp.get(name, slot)
    return slot.value


class TestPrimitives:
    """Primitive assignments round-trip through retrieval."""

    @pytest.mark.parametrize("source,expected,value", [
        ("bool x = true;", bool, True),
        ("bool x = false;", bool, False),
        ("int x = -42;", int, -42),
        ("double x = 2.5e3;", float, 2500.0),
        ('string x = "a \\"quoted\\" word";', str, 'a "quoted" word'),
        ("x = 7;", int, 7),
        ("x = 0.25;", float, 0.25),
        ('x = "";', str, ""),
    ])
    def test_literal_round_trip(self, interp, source, expected, value):
        interp.eval_string(source)
        assert fetch(interp, "x", expected) == value

    def test_declared_type_must_match(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string('int x = "five";')
        err = exc_info.value
        assert err.code == "E201"
        assert "'int'" in err.diagnostic.message
        assert "'string'" in err.diagnostic.message
        assert err.span.start.column == 9

    def test_bool_is_not_int(self, interp):
        with pytest.raises(TypeError):
            interp.eval_string("int x = true;")

    def test_comments_and_whitespace(self, interp):
        interp.eval_string(textwrap.dedent("""
            // learning rate
            double   rate =
                0.01;   // small
        """))
        assert fetch(interp, "rate", float) == 0.01


class TestWidening:
    """int -> double is an error by default and allowed when configured."""

    def test_int_literal_for_double_is_error_by_default(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string("double d = 1;")
        assert exc_info.value.code == "E201"
        assert not interp.env.contains("d")

    def test_int_list_for_double_list_is_error_by_default(self, interp):
        with pytest.raises(TypeError):
            interp.eval_string("double[] ds = {1.0, 2};")

    def test_int_param_for_double_param_is_error_by_default(self, interp):
        with pytest.raises(ConstructionError) as exc_info:
            interp.eval_string("Regularizer r = L2(strength(1));")
        assert "expects 'double'" in str(exc_info.value)

    def test_widening_literal(self, widening_interp):
        widening_interp.eval_string("double d = 1;")
        value = fetch(widening_interp, "d", float)
        assert value == 1.0
        assert isinstance(value, float)
        assert widening_interp.env.type_of("d") == DOUBLE

    def test_widening_list(self, widening_interp):
        widening_interp.eval_string("double[] ds = {1.0, 2, 3};")
        values = fetch(widening_interp, "ds", "double[]")
        assert values == [1.0, 2.0, 3.0]
        assert all(isinstance(v, float) for v in values)

    def test_widening_reassignment(self, widening_interp):
        widening_interp.eval_string("d = 0.5; d = 2;")
        assert fetch(widening_interp, "d", float) == 2.0

    def test_widening_param(self, widening_interp):
        widening_interp.eval_string("Regularizer r = L2(strength(1));")
        assert fetch(widening_interp, "r", L2).strength == 1.0

    def test_widening_int_list_into_double_slot(self, widening_interp):
        widening_interp.eval_string("xs = {1, 2};")
        values = fetch(widening_interp, "xs", "double[]")
        assert values == [1.0, 2.0]
        assert all(isinstance(v, float) for v in values)
        assert fetch(widening_interp, "xs", "int[]") == [1, 2]

    def test_int_list_into_double_slot_is_error_by_default(self, interp):
        interp.eval_string("xs = {1, 2};")
        with pytest.raises(RetrievalTypeError):
            interp.get("xs", Slot("double[]"))

    def test_widening_setting_reaches_host_registry(self, registry):
        settings = InterpreterSettings(widen_int_to_double=True)
        interp = Interpreter(resolver=registry, settings=settings)
        interp.eval_string(
            'Regularizer r = L2(strength(1));'
            'Model m = PerceptronModel(name("p"), weights({1, 2}));'
        )
        assert registry.widen_int_to_double is False
        strength = fetch(interp, "r", L2).strength
        assert strength == 1.0 and isinstance(strength, float)
        assert fetch(interp, "m", PerceptronModel).weights == [1.0, 2.0]

    def test_no_narrowing(self, widening_interp):
        with pytest.raises(TypeError):
            widening_interp.eval_string("int i = 1.5;")

    def test_untyped_mixed_list_is_still_heterogeneous(self, widening_interp):
        with pytest.raises(TypeError) as exc_info:
            widening_interp.eval_string("xs = {1.5, 2};")
        assert exc_info.value.code == "E202"


class TestSequences:
    """Sequence literals keep order and must be homogeneous."""

    def test_typed_sequence(self, interp):
        interp.eval_string("int[] xs = {3, 1, 2};")
        assert fetch(interp, "xs", "int[]") == [3, 1, 2]

    def test_inferred_sequence(self, interp):
        interp.eval_string('names = {"b", "a"};')
        assert fetch(interp, "names", list) == ["b", "a"]
        assert interp.env.type_of("names").name == "string[]"

    def test_heterogeneous_list_fails_at_parse_time(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string('xs = {true, "x"};')
        err = exc_info.value
        assert err.code == "E202"
        assert err.span.start.column == 13
        assert not interp.env.contains("xs")

    def test_typed_heterogeneous_list_names_element(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string("int[] xs = {1, 2, \"3\"};")
        assert exc_info.value.span.start.column == 19

    def test_empty_list_needs_specifier(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string("xs = {};")
        assert exc_info.value.code == "E203"

    def test_empty_typed_list(self, interp):
        interp.eval_string("string[] xs = {};")
        assert fetch(interp, "xs", "string[]") == []
        assert interp.env.type_of("xs").name == "string[]"

    def test_empty_list_reassigns_existing(self, interp):
        interp.eval_string("xs = {1, 2}; xs = {};")
        assert fetch(interp, "xs", "int[]") == []

    def test_scalar_for_sequence_type(self, interp):
        with pytest.raises(TypeError):
            interp.eval_string("int[] xs = 1;")

    def test_list_for_scalar_type(self, interp):
        with pytest.raises(TypeError):
            interp.eval_string("int x = {1};")

    def test_list_elements_from_variables(self, interp):
        interp.eval_string("a = 1; b = 2; xs = {a, b, 3};")
        assert fetch(interp, "xs") == [1, 2, 3]

    def test_sequence_variable_cannot_be_element(self, interp):
        with pytest.raises(TypeError):
            interp.eval_string("a = {1}; xs = {a};")

    def test_sequence_variable_reference(self, interp):
        interp.eval_string("a = {1, 2}; int[] b = a;")
        assert fetch(interp, "b", "int[]") == [1, 2]

    def test_retrieval_mismatch(self, interp):
        interp.eval_string("int[] xs = {1};")
        with pytest.raises(RetrievalTypeError):
            interp.get("xs", Slot("string[]"))


class TestReassignment:
    """A name keeps the type of its first assignment."""

    def test_different_primitive_type_fails(self, interp):
        interp.eval_string("x = 1;")
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string('x = "one";')
        assert exc_info.value.code == "E206"
        assert fetch(interp, "x", int) == 1

    def test_different_declared_type_fails(self, interp):
        interp.eval_string("int x = 1;")
        with pytest.raises(TypeError):
            interp.eval_string("double x = 1.5;")

    def test_same_type_replaces_value(self, interp):
        interp.eval_string("int x = 1; x = 2; int x = 3;")
        assert fetch(interp, "x", int) == 3

    def test_sequence_element_type_fixed(self, interp):
        interp.eval_string("xs = {1};")
        with pytest.raises(TypeError):
            interp.eval_string('xs = {"a"};')


class TestReferences:
    """Bare identifiers read earlier bindings."""

    def test_reference(self, interp):
        interp.eval_string('string n = "foo"; m = n;')
        assert fetch(interp, "m", str) == "foo"

    def test_reference_type_checked(self, interp):
        interp.eval_string('n = "foo";')
        with pytest.raises(TypeError):
            interp.eval_string("int i = n;")

    def test_undefined_reference(self, interp):
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            interp.eval_string("x = 1;\ny = missing;", filename="main.cfg")
        err = exc_info.value
        assert err.name == "missing"
        assert err.code == "E301"
        assert "missing" in str(err)
        assert err.span.start.filename == "main.cfg"
        assert err.span.start.line == 2
        assert err.span.start.column == 5

    def test_undefined_reference_in_list(self, interp):
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            interp.eval_string("xs = {1, nope};")
        assert exc_info.value.name == "nope"

    def test_undefined_reference_in_param(self, interp):
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            interp.eval_string("m = PerceptronModel(name(nope));")
        assert exc_info.value.name == "nope"

    def test_self_reference_uses_previous_value(self, interp):
        interp.eval_string("x = 1; x = x;")
        assert fetch(interp, "x") == 1


class TestObjects:
    """Construction specs and object handles."""

    def test_construct_with_specifier(self, interp):
        interp.eval_string('string n = "foo"; Model m = PerceptronModel(name(n), weights({0.5, 1.5}));')
        model = fetch(interp, "m", PerceptronModel)
        assert model.name == "foo"
        assert model.weights == [0.5, 1.5]
        assert interp.env.lookup("m").concrete_type == "PerceptronModel"

    def test_construct_infers_base_type(self, interp):
        interp.eval_string('m = PerceptronModel(name("foo"));')
        assert interp.env.type_of("m") == ObjectType("Model")

    def test_object_list(self, interp):
        interp.eval_string(textwrap.dedent("""
            Model m = PerceptronModel(name("a"));
            m_vec = {m, PerceptronModel(name("b")), nullptr};
        """))
        models = fetch(interp, "m_vec", "Model[]")
        assert [getattr(x, "name", None) for x in models] == ["a", "b", None]
        assert interp.env.type_of("m_vec") == SequenceType(ObjectType("Model"))

    def test_nested_specs(self, interp):
        interp.eval_string(textwrap.dedent("""
            Model m = Ensemble(
                members({
                    PerceptronModel(name("a")),
                    RegularizedModel(inner(PerceptronModel(name("b"))),
                                     regularizer(L2(strength(0.1))))
                }),
                name("both"));
        """))
        ensemble = fetch(interp, "m", Ensemble)
        assert ensemble.name == "both"
        assert isinstance(ensemble.members[1], RegularizedModel)
        assert ensemble.members[1].inner.name == "b"
        assert ensemble.members[1].regularizer.strength == 0.1

    def test_null_handle(self, interp):
        interp.eval_string("Model m = nullptr;")
        assert fetch(interp, "m", PerceptronModel) is None
        assert interp.env.type_of("m") == ObjectType("Model")
        interp.eval_string('m = PerceptronModel(name("later"));')
        assert fetch(interp, "m", PerceptronModel).name == "later"

    def test_null_for_declared_base_without_concrete_types(self, interp):
        interp.eval_string("Scheduler s = null;")
        assert interp.env.type_of("s") == ObjectType("Scheduler")

    def test_untyped_null_needs_specifier(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string("m = nullptr;")
        assert exc_info.value.code == "E203"

    def test_untyped_null_reassigns_object(self, interp):
        interp.eval_string('m = PerceptronModel(name("a")); m = nullptr;')
        assert fetch(interp, "m") is None

    def test_null_for_primitive(self, interp):
        with pytest.raises(TypeError):
            interp.eval_string("int i = nullptr;")

    def test_unknown_type_specifier(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string("Optimizer o = nullptr;")
        assert exc_info.value.code == "E204"

    def test_wrong_base_type(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string("Regularizer r = PerceptronModel(name(\"a\"));")
        assert exc_info.value.code == "E201"

    def test_object_type_for_primitive_specifier(self, interp):
        with pytest.raises(TypeError):
            interp.eval_string('int i = PerceptronModel(name("a"));')

    def test_mixed_base_types_in_list(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string('xs = {PerceptronModel(name("a")), L2(strength(1.0))};')
        assert exc_info.value.code == "E202"

    @pytest.mark.parametrize("source,reason", [
        ("m = Perceptron(name(\"a\"));", "unknown type"),
        ("m = PerceptronModel();", "missing required parameter 'name'"),
        ("m = PerceptronModel(name(\"a\"), depth(3));", "unexpected parameter 'depth'"),
        ("m = PerceptronModel(name(3));", "expects 'string'"),
        ("m = Ensemble(members({}));", "at least one member"),
    ])
    def test_construction_errors(self, interp, source, reason):
        with pytest.raises(ConstructionError) as exc_info:
            interp.eval_string(source, filename="models.cfg")
        err = exc_info.value
        assert err.code == "E501"
        assert reason in err.diagnostic.message
        assert err.span.start.filename == "models.cfg"
        assert err.span.start.column == 5
        assert not interp.env.contains("m")


class RecordingResolver(ConstructionResolver):
    """Records construct() calls and fails for one type name."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def construct(self, type_name, params):
        self.calls.append((type_name, [name for name, _ in params]))
        if type_name == self.fail_on:
            raise ConstructionFailure(type_name, "refused")
        return object_val({"type": type_name}, "Node", type_name)

    def known_types(self):
        return {"Node": ["Leaf", "Branch", "Root"]}


class TestConstructionOrder:
    """Nested specs resolve innermost first."""

    def test_innermost_first(self):
        resolver = RecordingResolver()
        interp = Interpreter(resolver=resolver)
        interp.eval_string("Node n = Root(left(Branch(child(Leaf()))), right(Leaf()));")
        assert [call[0] for call in resolver.calls] == ["Leaf", "Branch", "Leaf", "Root"]
        assert resolver.calls[-1] == ("Root", ["left", "right"])

    def test_inner_failure_skips_outer(self):
        resolver = RecordingResolver(fail_on="Leaf")
        interp = Interpreter(resolver=resolver)
        with pytest.raises(ConstructionError) as exc_info:
            interp.eval_string("Node n = Root(left(Branch(child(Leaf()))));")
        assert exc_info.value.type_name == "Leaf"
        assert [call[0] for call in resolver.calls] == ["Leaf"]
        assert not interp.env.contains("n")


class TestEvaluation:
    """Statement-by-statement evaluation and entry points."""

    def test_statements_before_error_stay_bound(self, interp):
        with pytest.raises(ParserError):
            interp.eval_string("a = 1; b = 2; c = ;")
        assert fetch(interp, "a") == 1
        assert fetch(interp, "b") == 2

    def test_statements_before_lex_error_stay_bound(self, interp):
        with pytest.raises(LexerError):
            interp.eval_string("a = 1; b = @;")
        assert fetch(interp, "a") == 1

    def test_eval_stream(self, interp):
        interp.eval_stream(io.StringIO("x = 1; y = {x};"))
        assert fetch(interp, "y") == [1]

    def test_eval_file(self, interp, tmp_path):
        path = tmp_path / "experiment.cfg"
        path.write_text('string n = "foo";\nModel m = PerceptronModel(name(n));\n')
        interp.eval_file(str(path))
        assert fetch(interp, "m", PerceptronModel).name == "foo"

    def test_error_reports_file_and_source_line(self, interp, tmp_path):
        path = tmp_path / "bad.cfg"
        path.write_text("x = 1;\nint y = \"two\";\n")
        with pytest.raises(TypeError) as exc_info:
            interp.eval_file(str(path))
        err = exc_info.value
        assert err.span.start.filename == str(path)
        assert err.diagnostic.source_line == 'int y = "two";'
        assert f"{path}:2:9" in str(err)

    def test_string_without_filename(self, interp):
        with pytest.raises(TypeError) as exc_info:
            interp.eval_string("int y = 1.5;")
        assert exc_info.value.span.start.filename is None
        assert str(exc_info.value).startswith("1:9: error[E201]")

    def test_evaluations_share_environment(self, interp):
        interp.eval_string("a = 1;")
        interp.eval_string("b = {a, a};")
        assert fetch(interp, "b") == [1, 1]

    def test_debug_logging(self, registry, caplog):
        interp = Interpreter(resolver=registry, debug=2)
        with caplog.at_level(logging.DEBUG, logger="factconf"):
            interp.eval_string('m = PerceptronModel(name("a"));')
        assert 'm = PerceptronModel(name("a"));' in caplog.text
        assert "constructing PerceptronModel" in caplog.text


class TestRetrieval:
    """get, get_many and value_of."""

    def test_get_missing(self, interp):
        slot = Slot(int, default=5)
        assert interp.get("nope", slot) is False
        assert slot.value == 5

    def test_get_many(self, interp):
        interp.eval_string('i = 6; f = "foo";')
        i_out, f_out = Slot(int), Slot(str)
        assert interp.get_many([("i", i_out), ("f", f_out)]) is True
        assert i_out.value == 6
        assert f_out.value == "foo"

    def test_get_many_stops_at_missing(self, interp, caplog):
        interp.eval_string('i = 6; f = "foo";')
        i_out, g_out, f_out = Slot(int), Slot(int, default=-1), Slot(str)
        with caplog.at_level(logging.WARNING, logger="factconf"):
            assert interp.get_many([("i", i_out), ("g", g_out), ("f", f_out)]) is False
        assert i_out.value == 6
        assert g_out.value == -1
        assert not f_out.is_set
        assert "'g'" in caplog.text

    def test_get_many_mismatch_raises(self, interp):
        interp.eval_string('i = 6; f = "foo";')
        with pytest.raises(RetrievalTypeError):
            interp.get_many([("i", Slot(int)), ("f", Slot(int))])

    def test_value_of(self, interp):
        interp.eval_string("xs = {1, 2};")
        assert interp.value_of("xs") == [1, 2]
        with pytest.raises(KeyError):
            interp.value_of("nope")


class TestIntrospection:
    """bindings(), known_types() and the print helpers."""

    def test_bindings(self, interp):
        interp.eval_string("a = 1; b = true;")
        bindings = interp.bindings()
        assert set(bindings) == {"a", "b"}
        assert bindings["a"].type == INT

    def test_known_types(self, interp):
        assert "PerceptronModel" in interp.known_types()["Model"]

    def test_print_env(self, interp):
        interp.eval_string('n = "foo"; m = PerceptronModel(name(n));')
        out = io.StringIO()
        interp.print_env(out)
        assert out.getvalue() == "Model m = <PerceptronModel>;\nstring n = 'foo';\n"

    def test_print_factories(self, interp):
        out = io.StringIO()
        interp.print_factories(out)
        text = out.getvalue()
        assert "Model:" in text
        assert "  L2(strength(double)) -> Regularizer" in text
        assert "Scheduler:" in text

    def test_default_resolver_is_empty(self):
        interp = Interpreter()
        assert isinstance(interp.resolver, FactoryRegistry)
        assert interp.known_types() == {}
        interp.eval_string("x = 1;")
        with pytest.raises(ConstructionError):
            interp.eval_string("m = Anything();")

    def test_custom_registry_from_decorator(self):
        registry = FactoryRegistry()

        @registry.constructible("Shape", params=[Param("r", "double")])
        class Circle:
            def __init__(self, r):
                self.r = r

        interp = Interpreter(resolver=registry)
        interp.eval_string("Shape[] shapes = {Circle(r(1.0)), Circle(r(2.0))};")
        assert [c.r for c in fetch(interp, "shapes", list)] == [1.0, 2.0]
