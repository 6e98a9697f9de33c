"""Tests for registration id generation"""

import pytest

from party_registration.services.id_generator import IdGenerator, to_base36


@pytest.mark.parametrize(
    "value, expected", [(0, "0"), (35, "z"), (36, "10"), (1295, "zz")]
)
def test_to_base36(value, expected):
    assert to_base36(value) == expected


def test_to_base36_rejects_negative():
    with pytest.raises(ValueError):
        to_base36(-1)


def test_ids_are_unique_within_one_millisecond():
    generator = IdGenerator(clock=lambda: 1_767_225_600.0)

    ids = {generator() for _ in range(5000)}

    assert len(ids) == 5000


def test_timestamp_component_never_goes_backwards():
    times = iter([1_767_225_600.500, 1_767_225_599.000, 1_767_225_601.000])
    generator = IdGenerator(random_length=0, clock=lambda: next(times))

    first, second, third = generator(), generator(), generator()

    assert first == second == to_base36(1_767_225_600_500)
    assert third == to_base36(1_767_225_601_000)


def test_id_shape():
    generator = IdGenerator(random_length=11, clock=lambda: 1_767_225_600.0)

    registration_id = generator()

    prefix = to_base36(1_767_225_600_000)
    assert registration_id.startswith(prefix)
    assert len(registration_id) == len(prefix) + 11
    assert registration_id.isalnum() and registration_id == registration_id.lower()
