"""Pytest configuration and shared fixtures."""
import pytest
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional

import recordpath.context as context_module
from recordpath import FluentSetterDiscovery, ResolverContext


@dataclass
class Address:
    """Nested structured record."""
    street: str = ""
    city: str = ""


@dataclass
class Customer:
    """Structured record with simple, indexed and keyed attributes."""
    name: str = ""
    address: Optional[Address] = None
    contact: Dict[str, str] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    registry_name: ClassVar[str] = "customers"


@dataclass
class LineItem:
    sku: str = ""
    qty: int = 0


@dataclass
class Order:
    number: int = 0
    customer: Optional[Customer] = None
    items: List[LineItem] = field(default_factory=list)
    express: bool = False


@dataclass(frozen=True)
class Point:
    """Frozen record: every field is read-only."""
    x: int = 0
    y: int = 0


class Inventory:
    """Record exposing attributes only through accessor methods."""

    def __init__(self):
        self._owner = None
        self._slots = [None, None, None]
        self._labels = {}

    def get_owner(self) -> str:
        return self._owner

    def set_owner(self, owner: str) -> None:
        self._owner = owner

    def is_empty(self) -> bool:
        return all(slot is None for slot in self._slots)

    def get_slot(self, index: int) -> str:
        return self._slots[index]

    def set_slot(self, index: int, value: str) -> None:
        self._slots[index] = value

    def get_label(self, key: str) -> str:
        return self._labels[key]

    def set_label(self, key: str, value: str) -> None:
        self._labels[key] = value


class Query:
    """Record with fluent setters only."""

    def __init__(self):
        self.limit_value = None
        self.order_value = None

    def set_limit(self, limit: int) -> 'Query':
        self.limit_value = limit
        return self

    def set_order(self, order: str) -> 'Query':
        self.order_value = order
        return self


@pytest.fixture(autouse=True)
def reset_default_context():
    """Give every test a fresh process-wide default context."""
    original = context_module._default_context
    context_module._default_context = None

    yield

    context_module._default_context = original


@pytest.fixture
def resolver_context():
    """Provide a context with no discovery stages."""
    return ResolverContext()


@pytest.fixture
def fluent_context():
    """Provide a context that discovers fluent setters."""
    return ResolverContext([FluentSetterDiscovery()])


@pytest.fixture
def customer():
    return Customer(
        name="Ada",
        address=Address(street="1 Main St", city="Oslo"),
        contact={"phone": "555-0100"},
        tags=["vip", "early"],
    )


@pytest.fixture
def order(customer):
    return Order(
        number=42,
        customer=customer,
        items=[LineItem("A-1", 1), LineItem("B-2", 2)],
    )
