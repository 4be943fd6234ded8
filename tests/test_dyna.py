"""Tests for dynamic records and their shapes."""
import pytest

from recordpath import (
    DynaClass,
    DynaRecord,
    IllegalStateError,
    IndexRangeError,
    LazyDynaClass,
    NotIndexedError,
    NotKeyedError,
    RecordVariant,
    TypeConversionError,
    UnknownAttributeError,
    dyna_attribute,
    variant_of,
)

from conftest import Address


@pytest.fixture
def person_class():
    return DynaClass("Person", [
        ("name", str),
        ("age", int),
        ("tags", list),
        ("meta", dict),
        "anything",
    ])


class TestDynaClass:
    """Fixed shapes."""

    def test_declared_attributes(self, person_class):
        assert person_class.attribute_names() == ("name", "age", "tags", "meta", "anything")
        assert person_class.get_attribute("age").declared_type is int
        assert person_class.get_attribute("anything").declared_type is object
        assert person_class.get_attribute("missing") is None

    def test_classification(self, person_class):
        assert person_class.get_attribute("tags").is_indexed
        assert person_class.get_attribute("meta").is_keyed
        assert not person_class.get_attribute("name").is_indexed

    def test_empty_name_rejected(self, person_class):
        with pytest.raises(ValueError):
            person_class.get_attribute("")

    def test_new_instance_bound_to_class(self, person_class):
        record = person_class.new_instance()
        assert isinstance(record, DynaRecord)
        assert record.dyna_class is person_class
        assert variant_of(record) is RecordVariant.DYNAMIC

    def test_descriptor_specs(self):
        dyna = DynaClass("Spec", [dyna_attribute("ids", list, int)])
        assert dyna.get_attribute("ids").content_type is int


class TestDynaRecordFixed:
    """Records of a fixed shape."""

    def test_unset_reads_none(self, person_class):
        record = person_class.new_instance()
        assert record.get("name") is None
        assert record.get_keyed("meta", "k") is None

    def test_simple_round_trip(self, person_class):
        record = person_class.new_instance()
        record.set("name", "Ada")
        assert record.get("name") == "Ada"

    def test_unknown_read(self, person_class):
        with pytest.raises(UnknownAttributeError):
            person_class.new_instance().get("nickname")

    def test_unknown_write(self, person_class):
        with pytest.raises(UnknownAttributeError):
            person_class.new_instance().set("nickname", "A")

    def test_wrong_type_rejected(self, person_class):
        with pytest.raises(TypeConversionError):
            person_class.new_instance().set("age", "forty")

    def test_none_always_assignable(self, person_class):
        record = person_class.new_instance()
        record.set("age", None)
        assert record.get("age") is None

    def test_indexed_write_on_empty_list(self, person_class):
        """Fixed shapes do not grow lists."""
        record = person_class.new_instance()
        with pytest.raises(IndexRangeError):
            record.set_indexed("tags", 0, "x")

    def test_failed_indexed_write_leaves_record_unchanged(self, person_class):
        record = person_class.new_instance()
        with pytest.raises(IndexRangeError):
            record.set_indexed("tags", 0, "x")
        assert record.get("tags") is None
        with pytest.raises(IndexRangeError):
            record.set_indexed("tags", -1, "x")
        assert record.get("tags") is None

    def test_indexed_round_trip(self, person_class):
        record = person_class.new_instance()
        record.set("tags", ["a", "b"])
        record.set_indexed("tags", 1, "z")
        assert record.get_indexed("tags", 1) == "z"

    def test_indexed_read_out_of_range(self, person_class):
        record = person_class.new_instance()
        with pytest.raises(IndexRangeError):
            record.get_indexed("tags", 0)

    def test_keyed_round_trip(self, person_class):
        record = person_class.new_instance()
        record.set_keyed("meta", "source", "import")
        assert record.get_keyed("meta", "source") == "import"
        assert record.contains("meta", "source")
        assert not record.contains("meta", "other")

    def test_remove_key(self, person_class):
        record = person_class.new_instance()
        record.set_keyed("meta", "source", "import")
        record.remove("meta", "source")
        record.remove("meta", "never-set")
        assert not record.contains("meta", "source")

    def test_simple_attribute_not_indexed(self, person_class):
        record = person_class.new_instance()
        record.set("name", "Ada")
        with pytest.raises(NotIndexedError):
            record.get_indexed("name", 0)

    def test_simple_attribute_not_keyed(self, person_class):
        record = person_class.new_instance()
        with pytest.raises(NotKeyedError):
            record.set_keyed("age", "k", 1)

    def test_equality(self, person_class):
        a = person_class.new_instance()
        b = person_class.new_instance()
        a.set("name", "Ada")
        b.set("name", "Ada")
        assert a == b
        b.set("age", 3)
        assert a != b


class TestLazyDynaClass:
    """Extensible shapes."""

    def test_unknown_read_returns_none(self):
        record = LazyDynaClass("Bag").new_instance()
        assert record.get("anything") is None

    def test_unknown_read_raises_without_return_none(self):
        record = LazyDynaClass("Bag", return_none=False).new_instance()
        with pytest.raises(UnknownAttributeError):
            record.get("anything")

    def test_simple_write_registers_untyped(self):
        dyna = LazyDynaClass("Bag")
        record = dyna.new_instance()
        record.set("count", 3)
        assert "count" in dyna.attribute_names()
        assert dyna.get_attribute("count").declared_type is object
        record.set("count", "three")
        assert record.get("count") == "three"

    def test_indexed_write_registers_list_and_grows(self):
        dyna = LazyDynaClass("Bag")
        record = dyna.new_instance()
        record.set_indexed("slots", 2, "c")
        assert dyna.get_attribute("slots").declared_type is list
        assert record.get("slots") == [None, None, "c"]

    def test_negative_indexed_write_registers_nothing(self):
        dyna = LazyDynaClass("Bag")
        record = dyna.new_instance()
        with pytest.raises(IndexRangeError):
            record.set_indexed("slots", -1, "c")
        assert dyna.get_attribute("slots") is None

    def test_keyed_write_registers_dict(self):
        dyna = LazyDynaClass("Bag")
        record = dyna.new_instance()
        record.set_keyed("labels", "env", "prod")
        assert dyna.get_attribute("labels").declared_type is dict
        assert record.get("labels") == {"env": "prod"}

    def test_add_keeps_existing(self):
        dyna = LazyDynaClass("Bag", [("size", int)])
        dyna.add("size", str)
        assert dyna.get_attribute("size").declared_type is int

    def test_remove(self):
        dyna = LazyDynaClass("Bag", [("size", int)])
        dyna.remove("size")
        assert dyna.get_attribute("size") is None

    def test_restrict_then_write(self):
        """Writing works until the shape is restricted."""
        dyna = LazyDynaClass("Bag")
        record = dyna.new_instance()
        record.set("first", 1)
        dyna.restrict()

        record.set("first", 2)
        assert record.get("first") == 2
        with pytest.raises(IllegalStateError):
            record.set("second", 1)

    def test_restricted_unknown_read(self):
        dyna = LazyDynaClass("Bag")
        dyna.restrict()
        with pytest.raises(UnknownAttributeError):
            dyna.new_instance().get("anything")

    def test_restricted_add_and_remove(self):
        dyna = LazyDynaClass("Bag", ["kept"])
        dyna.restrict()
        assert dyna.restricted
        with pytest.raises(IllegalStateError):
            dyna.add("other")
        with pytest.raises(IllegalStateError):
            dyna.remove("kept")

    def test_unrestrict(self):
        dyna = LazyDynaClass("Bag")
        dyna.restrict()
        dyna.unrestrict()
        dyna.add("other")
        assert "other" in dyna.attribute_names()

    def test_default_name(self):
        assert LazyDynaClass().name == "LazyDynaClass"


class TestDynaResolution:
    """Property paths over dynamic records."""

    def test_paths_through_dyna_record(self, resolver_context, person_class):
        record = person_class.new_instance()
        resolver_context.set_property(record, "name", "Ada")
        resolver_context.set_property(record, "meta(team)", "core")
        resolver_context.set_property(record, "tags", ["x", "y"])
        resolver_context.set_property(record, "tags[0]", "w")

        assert resolver_context.get_property(record, "name") == "Ada"
        assert resolver_context.get_property(record, "meta(team)") == "core"
        assert resolver_context.get_property(record, "tags[0]") == "w"
        assert resolver_context.get_property(record, "meta(absent)") is None

    def test_write_converts_declared_type(self, resolver_context, person_class):
        record = person_class.new_instance()
        resolver_context.set_property(record, "age", "41")
        assert record.get("age") == 41

    def test_structured_value_inside_dyna(self, resolver_context):
        record = LazyDynaClass("Envelope").new_instance()
        record.set("address", Address(city="Oslo"))
        resolver_context.set_property(record, "address.street", "Kirkegata")
        assert resolver_context.get_property(record, "address.street") == "Kirkegata"
        assert resolver_context.get_property(record, "address.city") == "Oslo"

    def test_dyna_inside_structured(self, resolver_context, customer):
        holder = LazyDynaClass("Holder").new_instance()
        holder.set("customer", customer)
        outer = LazyDynaClass("Outer").new_instance()
        outer.set("holder", holder)
        assert resolver_context.get_property(outer, "holder.customer.address.city") == "Oslo"

    def test_lazy_unknown_intermediate_is_null(self, resolver_context):
        from recordpath import NullInPathError

        record = LazyDynaClass("Bag").new_instance()
        with pytest.raises(NullInPathError):
            resolver_context.get_property(record, "missing.child")

    def test_fixed_unknown_through_resolver(self, resolver_context, person_class):
        with pytest.raises(UnknownAttributeError):
            resolver_context.get_property(person_class.new_instance(), "nickname")
