"""Tests for specreader.reader.index."""

from __future__ import annotations

import pytest

from specreader.exceptions import UnresolvedRefError
from specreader.models import RefKey, Schema, SchemaRef
from specreader.reader.index import SchemaIndex


PET = RefKey("/specs/pet.yaml", ("Pet",))
ALIAS = RefKey("/specs/a.yaml", ("components", "schemas", "Alias"))
USE = RefKey("/specs/a.yaml", ("paths", "/pets", "get", "schema"))


class TestRecord:
    def test_first_schema_wins(self) -> None:
        index = SchemaIndex()
        first = Schema(key=PET, type="object")
        second = Schema(key=PET, type="object")

        assert index.record(PET, first) is first
        assert index.record(PET, second) is first
        assert index.resolved(PET) is first

    def test_schema_replaces_placeholder(self) -> None:
        index = SchemaIndex()
        index.record(PET, SchemaRef(target=ALIAS))
        schema = Schema(key=PET)

        assert index.record(PET, schema) is schema
        assert index.get(PET) is schema

    def test_placeholder_does_not_replace_schema(self) -> None:
        index = SchemaIndex()
        schema = Schema(key=PET)
        index.record(PET, schema)

        assert index.record(PET, SchemaRef(target=ALIAS)) is schema

    def test_structurally_equal_schemas_keep_distinct_keys(self) -> None:
        index = SchemaIndex()
        other = RefKey("/specs/other.yaml", ("Pet",))
        index.record(PET, Schema(key=PET, type="object"))
        index.record(other, Schema(key=other, type="object"))

        assert len(index) == 2
        assert index.resolved(PET) is not index.resolved(other)

    def test_mapping_protocol(self) -> None:
        index = SchemaIndex()
        index.record(PET, Schema(key=PET))
        assert PET in index
        assert list(index) == [PET]
        assert [key for key, _ in index.items()] == [PET]
        assert index.get(ALIAS) is None
        assert index.resolved(ALIAS) is None


class TestUnresolvedTargets:
    def test_lists_each_missing_target_once(self) -> None:
        index = SchemaIndex()
        index.record(USE, SchemaRef(target=PET))
        index.record(ALIAS, SchemaRef(target=PET))
        assert index.unresolved_targets() == [PET]

    def test_recorded_target_is_not_pending(self) -> None:
        index = SchemaIndex()
        index.record(USE, SchemaRef(target=ALIAS))
        index.record(ALIAS, SchemaRef(target=PET))
        index.record(PET, Schema(key=PET))
        assert index.unresolved_targets() == []


class TestResolve:
    def test_follows_chain_of_refs(self) -> None:
        index = SchemaIndex()
        pet = Schema(key=PET)
        index.record(PET, pet)
        index.record(ALIAS, SchemaRef(target=PET))
        index.record(USE, SchemaRef(target=ALIAS))

        assert index.resolve(USE) is pet
        assert index.resolve(SchemaRef(target=ALIAS)) is pet
        assert index.resolve(pet) is pet

    def test_dangling_target_raises(self) -> None:
        index = SchemaIndex()
        with pytest.raises(UnresolvedRefError, match="segment 'Pet' not found"):
            index.resolve(SchemaRef(target=PET))

    def test_loop_raises(self) -> None:
        index = SchemaIndex()
        index.record(ALIAS, SchemaRef(target=USE))
        index.record(USE, SchemaRef(target=ALIAS))
        with pytest.raises(UnresolvedRefError, match="loops back"):
            index.resolve(ALIAS)
