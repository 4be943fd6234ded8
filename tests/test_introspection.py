"""Tests for intrinsic introspection and descriptor types."""
import gc
import pytest
from dataclasses import dataclass, FrozenInstanceError
from typing import Dict, List, NamedTuple, Optional

from recordpath import AttributeDescriptor, MethodRef, ShapeDescriptorSet, introspect_shape
from recordpath.descriptors import concrete_class, content_type_of, is_mapping_type, is_sequence_type

from conftest import Customer, Inventory, Point, Query


def _by_name(cls):
    return {d.name: d for d in introspect_shape(cls)}


class TestDataclassIntrospection:
    """Annotated fields of dataclasses."""

    def test_public_fields_found(self):
        attrs = _by_name(Customer)
        assert set(attrs) == {"name", "address", "contact", "tags"}

    def test_classvar_skipped(self):
        assert "registry_name" not in _by_name(Customer)

    def test_field_types(self):
        attrs = _by_name(Customer)
        assert attrs["name"].declared_type is str
        assert attrs["tags"].content_type is str
        assert attrs["contact"].content_type is str
        assert attrs["name"].content_type is None

    def test_indexed_and_keyed_classification(self):
        attrs = _by_name(Customer)
        assert attrs["tags"].is_indexed
        assert not attrs["tags"].is_keyed
        assert attrs["contact"].is_keyed
        assert not attrs["name"].is_indexed

    def test_fields_readable_and_writable(self):
        attrs = _by_name(Customer)
        assert attrs["name"].readable
        assert attrs["name"].writable

    def test_frozen_fields_read_only(self):
        attrs = _by_name(Point)
        assert attrs["x"].readable
        assert not attrs["x"].writable
        assert attrs["x"].setter is None

    def test_private_fields_skipped(self):
        @dataclass
        class Secretive:
            visible: int = 0
            _hidden: int = 0

        assert set(_by_name(Secretive)) == {"visible"}


class TestOtherShapes:
    """NamedTuples, slots, plain classes and properties."""

    def test_namedtuple_fields_read_only(self):
        class Pair(NamedTuple):
            left: int
            right: int

        attrs = _by_name(Pair)
        assert set(attrs) == {"left", "right"}
        assert not attrs["left"].writable

    def test_slots(self):
        class Slotted:
            __slots__ = ("alpha", "beta", "_private")

        attrs = _by_name(Slotted)
        assert set(attrs) == {"alpha", "beta"}
        assert attrs["alpha"].writable

    def test_init_parameters_of_plain_class(self):
        class Plain:
            def __init__(self, host: str, port: int = 80, *, secure=False):
                self.host = host
                self.port = port
                self.secure = secure

        attrs = _by_name(Plain)
        assert set(attrs) == {"host", "port", "secure"}
        assert attrs["port"].declared_type is int
        assert attrs["secure"].declared_type is object

    def test_property_with_and_without_setter(self):
        class Temperature:
            def __init__(self):
                self._celsius = 0.0

            @property
            def celsius(self) -> float:
                return self._celsius

            @celsius.setter
            def celsius(self, value):
                self._celsius = value

            @property
            def fahrenheit(self) -> float:
                return self._celsius * 9 / 5 + 32

        attrs = _by_name(Temperature)
        assert attrs["celsius"].writable
        assert attrs["celsius"].declared_type is float
        assert attrs["fahrenheit"].readable
        assert not attrs["fahrenheit"].writable

    def test_subclass_overrides_base(self):
        @dataclass
        class Base:
            value: int = 0

        @dataclass
        class Child(Base):
            value: str = ""
            extra: bool = False

        attrs = _by_name(Child)
        assert attrs["value"].declared_type is str
        assert list(attrs) == ["value", "extra"]


class TestAccessorMethods:
    """get_x / is_x / set_x classified by signature."""

    def test_simple_getter_and_setter(self):
        attrs = _by_name(Inventory)
        owner = attrs["owner"]
        assert owner.declared_type is str
        assert owner.getter is Inventory.get_owner
        assert isinstance(owner.setter, MethodRef)

    def test_is_prefix_getter(self):
        attrs = _by_name(Inventory)
        assert attrs["empty"].readable
        assert not attrs["empty"].writable

    def test_indexed_accessors(self):
        slot = _by_name(Inventory)["slot"]
        assert slot.indexed_getter is Inventory.get_slot
        assert isinstance(slot.indexed_setter, MethodRef)
        assert slot.getter is None
        assert slot.is_indexed
        assert slot.content_type is str

    def test_keyed_accessors(self):
        label = _by_name(Inventory)["label"]
        assert label.keyed_getter is Inventory.get_label
        assert label.is_keyed
        assert not label.is_indexed

    def test_fluent_setters_not_intrinsic(self):
        """Setters returning the record are left to FluentSetterDiscovery."""
        attrs = _by_name(Query)
        assert "limit" not in attrs
        assert "order" not in attrs

    def test_unannotated_setter_accepted(self):
        class Loose:
            def set_mode(self, mode):
                self.mode_value = mode

        attrs = _by_name(Loose)
        assert attrs["mode"].writable
        assert not attrs["mode"].readable


class TestAttributeDescriptor:
    """Descriptor value semantics."""

    def test_immutable(self):
        descriptor = AttributeDescriptor("name", str)
        with pytest.raises(FrozenInstanceError):
            descriptor.name = "other"

    def test_equality_ignores_accessors(self):
        a = AttributeDescriptor("name", str, getter=lambda r: 1)
        b = AttributeDescriptor("name", str, getter=lambda r: 2)
        assert a == b

    def test_with_changes_copies(self):
        original = AttributeDescriptor("name", str)
        changed = original.with_changes(writable=False)
        assert original.writable
        assert not changed.writable


class TestShapeDescriptorSet:
    """Read-only descriptor collection."""

    def test_mapping_interface(self):
        attrs = ShapeDescriptorSet.from_descriptors(Customer, introspect_shape(Customer))
        assert "name" in attrs
        assert len(attrs) == 4
        assert attrs.attribute_names() == ("name", "address", "contact", "tags")
        assert attrs.shape is Customer

    def test_not_mutable(self):
        attrs = ShapeDescriptorSet.from_descriptors(Customer, introspect_shape(Customer))
        with pytest.raises(TypeError):
            attrs["name"] = AttributeDescriptor("name")

    def test_readding_name_replaces(self):
        attrs = ShapeDescriptorSet.from_descriptors(object, [
            AttributeDescriptor("a", int),
            AttributeDescriptor("b", int),
            AttributeDescriptor("a", str),
        ])
        assert attrs.attribute_names() == ("a", "b")
        assert attrs["a"].declared_type is str

    def test_write_method_for_read_only(self):
        attrs = ShapeDescriptorSet.from_descriptors(Point, introspect_shape(Point))
        assert attrs.write_method("x") is None
        assert attrs.write_method("missing") is None


class TestMethodRef:
    """Weak setter references recoverable by name."""

    def test_alive_reference(self):
        class Target:
            def set_value(self, value) -> None:
                self.value = value

        ref = MethodRef(Target.set_value, "set_value", 2)
        assert ref.resolve(Target) is Target.set_value

    def test_recovers_replacement(self):
        class Target:
            def set_value(self, value) -> None:
                self.value = value

        ref = MethodRef(Target.set_value, "set_value", 2)

        def replacement(self, value):
            self.value = value * 2

        Target.set_value = replacement
        gc.collect()
        assert ref.resolve(Target) is replacement

    def test_wrong_arity_replacement_rejected(self):
        class Target:
            def set_value(self, value) -> None:
                self.value = value

        ref = MethodRef(Target.set_value, "set_value", 2)
        Target.set_value = lambda self: None
        gc.collect()
        assert ref.resolve(Target) is None

    def test_deleted_method(self):
        class Target:
            def set_value(self, value) -> None:
                self.value = value

        ref = MethodRef(Target.set_value, "set_value", 2)
        del Target.set_value
        gc.collect()
        assert ref.resolve(Target) is None

    def test_replacement_with_other_value_type_rejected(self):
        class Target:
            def set_value(self, value: int) -> None:
                self.value = value

        ref = MethodRef(Target.set_value, "set_value", 2)
        assert ref.value_type is int

        def replacement(self, value: str) -> None:
            self.value = value

        Target.set_value = replacement
        gc.collect()
        assert ref.resolve(Target) is None

    def test_unannotated_replacement_accepted(self):
        class Target:
            def set_value(self, value: int) -> None:
                self.value = value

        ref = MethodRef(Target.set_value, "set_value", 2)

        def replacement(self, value):
            self.value = value

        Target.set_value = replacement
        gc.collect()
        assert ref.resolve(Target) is replacement


class TestTypeHelpers:
    """Classification of type hints."""

    def test_sequence_types(self):
        assert is_sequence_type(List[int])
        assert is_sequence_type(tuple)
        assert is_sequence_type(Optional[List[str]])
        assert not is_sequence_type(str)
        assert not is_sequence_type(bytes)

    def test_mapping_types(self):
        assert is_mapping_type(Dict[str, int])
        assert not is_mapping_type(List[int])

    def test_content_type(self):
        assert content_type_of(List[int]) is int
        assert content_type_of(Dict[str, float]) is float
        assert content_type_of(list) is None

    def test_concrete_class(self):
        assert concrete_class(Optional[int]) is int
        assert concrete_class(List[int]) is list
        assert concrete_class(object) is None
