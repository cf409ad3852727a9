"""
Tests for the type system and runtime values.
"""

import pytest

from factconf import (
    BOOL, INT, DOUBLE, STRING, NULL,
    ObjectType, SequenceType, parse_type, resolve_type_name,
    Value, bool_val, int_val, double_val, string_val, object_val, null_val,
    sequence_val, unwrap_value,
)
from factconf.types import UNKNOWN, common_type
from factconf.values import retype


class TestTypes:
    """Test type compatibility rules."""

    def test_primitive_identity(self):
        for t in (BOOL, INT, DOUBLE, STRING):
            assert t.is_assignable_from(t)
        assert not INT.is_assignable_from(BOOL)
        assert not STRING.is_assignable_from(INT)

    def test_int_to_double_needs_widening(self):
        assert not DOUBLE.is_assignable_from(INT)
        assert DOUBLE.is_assignable_from(INT, widen=True)
        assert not INT.is_assignable_from(DOUBLE, widen=True)

    def test_object_accepts_null(self):
        model = ObjectType("Model")
        assert model.is_assignable_from(ObjectType("Model"))
        assert model.is_assignable_from(NULL)
        assert not model.is_assignable_from(ObjectType("Regularizer"))

    def test_sequences(self):
        ints = SequenceType(INT)
        assert ints.is_assignable_from(SequenceType(INT))
        assert ints.is_assignable_from(SequenceType(UNKNOWN))
        assert not ints.is_assignable_from(INT)
        assert not ints.is_assignable_from(SequenceType(STRING))
        assert SequenceType(DOUBLE).is_assignable_from(SequenceType(INT), widen=True)

    def test_names(self):
        assert SequenceType(ObjectType("Model")).name == "Model[]"
        assert str(DOUBLE) == "double"

    def test_parse_type(self):
        assert parse_type("int") == INT
        assert parse_type("double[]") == SequenceType(DOUBLE)
        assert parse_type(" Model [] ") == SequenceType(ObjectType("Model"))
        assert resolve_type_name("Scheduler") == ObjectType("Scheduler")

    def test_common_type(self):
        model = ObjectType("Model")
        assert common_type(INT, INT) == INT
        assert common_type(NULL, model) == model
        assert common_type(model, NULL) == model
        assert common_type(INT, DOUBLE) is None
        assert common_type(BOOL, STRING) is None


class TestValues:
    """Test runtime value wrappers."""

    def test_scalars(self):
        assert bool_val(True).data is True
        assert int_val(42).type == INT
        assert double_val(3).data == 3.0
        assert isinstance(double_val(3).data, float)
        assert string_val("hi").type == STRING

    def test_object_and_null(self):
        obj = object()
        v = object_val(obj, "Model", "PerceptronModel")
        assert v.data is obj
        assert v.type == ObjectType("Model")
        assert v.concrete_type == "PerceptronModel"
        assert not v.is_null
        assert null_val("Model").type == ObjectType("Model")
        assert null_val().type == NULL
        assert null_val().is_null

    def test_sequence(self):
        v = sequence_val([int_val(1), int_val(2)])
        assert v.type == SequenceType(INT)
        assert v.data == (1, 2)
        assert unwrap_value(v) == [1, 2]

    def test_empty_sequence(self):
        assert sequence_val([]).type == SequenceType(UNKNOWN)
        assert sequence_val([], STRING).type == SequenceType(STRING)

    def test_values_are_immutable(self):
        v = int_val(1)
        with pytest.raises(Exception):
            v.data = 2

    def test_retype_widens_data(self):
        v = retype(int_val(2), DOUBLE)
        assert v.type == DOUBLE
        assert isinstance(v.data, float)
        seq = retype(sequence_val([int_val(1), int_val(2)]), SequenceType(DOUBLE))
        assert seq.data == (1.0, 2.0)
        assert all(isinstance(x, float) for x in seq.data)

    def test_repr(self):
        assert "PerceptronModel" in repr(object_val(object(), "Model", "PerceptronModel"))
        assert repr(Value(1, INT)) == "Value(1, int)"
