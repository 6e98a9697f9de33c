"""Tests for whole-file JSON persistence"""

import json
import os

import pytest

from party_registration.backends.json_file_backend import JsonFileBackend
from party_registration.services.errors import CorruptionError, PersistenceError


def test_ensure_exists_creates_empty_array(data_file):
    backend = JsonFileBackend(data_file)

    backend.ensure_exists()

    assert json.loads(data_file.read_text()) == []


def test_ensure_exists_keeps_existing_data(data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text('[{"id": "keep"}]')

    JsonFileBackend(data_file).ensure_exists()

    assert json.loads(data_file.read_text()) == [{"id": "keep"}]


def test_missing_file_reads_empty(data_file):
    assert JsonFileBackend(data_file).read() == []


def test_write_preserves_order(data_file):
    backend = JsonFileBackend(data_file)
    backend.ensure_exists()
    records = [{"id": "b"}, {"id": "a"}, {"id": "c"}]

    backend.write(records)

    assert backend.read() == records
    assert [p.name for p in data_file.parent.iterdir()] == [data_file.name]


@pytest.mark.parametrize("content", ["{not json", '{"id": "x"}', "[1, 2]", ""])
def test_unparseable_content_is_corruption(data_file, content):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(content)

    with pytest.raises(CorruptionError):
        JsonFileBackend(data_file).read()


def test_failed_replace_leaves_previous_file(data_file, monkeypatch):
    backend = JsonFileBackend(data_file)
    backend.ensure_exists()
    backend.write([{"id": "old"}])

    def failing_replace(src, dst):
        raise OSError("device busy")

    monkeypatch.setattr(os, "replace", failing_replace)

    with pytest.raises(PersistenceError):
        backend.write([{"id": "new"}])

    assert backend.read() == [{"id": "old"}]
    assert [p.name for p in data_file.parent.iterdir()] == [data_file.name]


def test_unserializable_record_is_persistence_error(data_file):
    backend = JsonFileBackend(data_file)
    backend.ensure_exists()

    with pytest.raises(PersistenceError):
        backend.write([{"id": object()}])

    assert backend.read() == []


def test_quarantine_copies_bytes_aside(data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text("{broken")

    copy = JsonFileBackend(data_file).quarantine()

    assert copy is not None
    assert copy.name.startswith("users.json.corrupt-")
    assert copy.read_text() == "{broken"
    assert data_file.read_text() == "{broken"
