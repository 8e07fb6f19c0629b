from dataclasses import dataclass
from typing import Optional

import pytest

from wapchost.codec import deserialize, serialize
from wapchost.errors import DeserializationError, SerializationError


@dataclass
class Person:
    first_name: str
    last_name: str
    age: int


@dataclass
class Family:
    name: str
    members: list[Person]
    pet: Optional[str] = None


def test_person_round_trip():
    person = Person("Samuel", "Clemens", 49)
    data = serialize(person)
    assert deserialize(data, Person) == person


def test_struct_is_encoded_as_map():
    data = serialize(Person("Samuel", "Clemens", 49))
    assert deserialize(data) == {"first_name": "Samuel", "last_name": "Clemens", "age": 49}


def test_string_wire_bytes():
    assert serialize("hello") == b"\xa5hello"
    assert deserialize(b"\xa5hello", str) == "hello"


def test_string_round_trip():
    assert deserialize(serialize("hello world"), str) == "hello world"


def test_nested_round_trip():
    family = Family("Clemens", [Person("Samuel", "Clemens", 49), Person("Olivia", "Clemens", 40)])
    assert deserialize(serialize(family), Family) == family


def test_struct_from_array_form():
    data = serialize(["Samuel", "Clemens", 49])
    assert deserialize(data, Person) == Person("Samuel", "Clemens", 49)


def test_unknown_fields_are_ignored():
    data = serialize({"first_name": "A", "last_name": "B", "age": 1, "extra": True})
    assert deserialize(data, Person) == Person("A", "B", 1)


def test_missing_field_fails():
    data = serialize({"first_name": "A"})
    with pytest.raises(DeserializationError):
        deserialize(data, Person)


def test_type_mismatch_fails():
    with pytest.raises(DeserializationError):
        deserialize(serialize(42), str)


def test_empty_buffer_fails():
    with pytest.raises(DeserializationError):
        deserialize(b"", str)


def test_unserializable_value_fails():
    with pytest.raises(SerializationError):
        serialize(object())