import logging

import pytest

from api_codegen.errors import ValidationError
from api_codegen.ids import IdGenerator
from api_codegen.model.component import Component, ComponentRegistry, ComponentSource, Ref
from api_codegen.model.merge import MergePolicy


def _registry(policy: MergePolicy = MergePolicy.KEEP_EXISTING) -> ComponentRegistry:
    return ComponentRegistry(IdGenerator(), policy)


class TestNewComponent:
    def test_empty_name_is_rejected(self):
        registry = _registry()
        with pytest.raises(ValidationError):
            registry.new_component("")
        assert len(registry) == 0

    def test_duplicate_returns_stored_component(self):
        registry = _registry()
        first = registry.new_component("Pet", source=ComponentSource.COMPONENT, source_doc="petstore.yaml")
        second = registry.new_component("pet", source=ComponentSource.COMPONENT, source_doc="PETSTORE.yaml")
        assert second is first
        assert len(registry) == 1

    def test_empty_source_doc_never_deduplicates(self):
        registry = _registry()
        registry.new_component("Pet")
        registry.new_component("Pet")
        assert len(registry) == 2

    def test_different_documents_are_kept_apart(self):
        registry = _registry()
        registry.new_component("User", source_doc="a.yaml")
        registry.new_component("User", source_doc="b.yaml")
        assert len(registry) == 2

    def test_components_stay_sorted_by_name(self):
        registry = _registry()
        registry.new_component("Zebra")
        registry.new_component("Apple")
        registry.new_component("Mango")
        assert [c.name for c in registry] == ["Apple", "Mango", "Zebra"]

    def test_properties_sorted_by_name(self):
        registry = _registry()
        props = [registry.new_property("zip"), registry.new_property("city")]
        comp = registry.new_component("Address", properties=props)
        assert [p.name for p in comp.properties] == ["city", "zip"]

    def test_properties_and_components_share_ids(self):
        registry = _registry()
        prop = registry.new_property("name")
        comp = registry.new_component("Pet")
        assert prop.id != comp.id


class TestAmbiguity:
    def test_same_name_and_document_with_other_shape_is_recorded(self, caplog):
        registry = _registry()
        with caplog.at_level(logging.WARNING, logger="api_codegen.core"):
            registry.new_component("Pet", format="json", source_doc="petstore.yaml")
            registry.new_component("Pet", format="xml", source_doc="petstore.yaml")

        assert len(registry) == 2
        assert len(registry.ambiguities) == 1
        assert registry.ambiguities[0].differing == ["format"]
        assert "Ambiguous component" in caplog.text


class TestMergePolicies:
    def test_keep_existing_ignores_incoming(self):
        registry = _registry()
        stored = registry.new_component("Pet", description="old", source_doc="d")
        registry.new_component("Pet", description="new", source_doc="d", replace_or_merge=True)
        assert stored.description == "old"

    def test_replace_overwrites_but_keeps_id(self):
        registry = _registry(MergePolicy.REPLACE)
        stored = registry.new_component("Pet", description="old", source_doc="d")
        stored_id = stored.id
        result = registry.new_component("Pet", description="new", source_doc="d", replace_or_merge=True)
        assert result is stored
        assert stored.description == "new"
        assert stored.id == stored_id

    def test_union_fills_gaps_and_unions_enums(self):
        registry = _registry(MergePolicy.UNION)
        stored = registry.new_component("Status", enums=["open"], source_doc="d")
        registry.new_component("Status", description="Ticket state", enums=["open", "closed"], source_doc="d", replace_or_merge=True)
        assert stored.description == "Ticket state"
        assert stored.enums == ["open", "closed"]

    def test_merge_reassigns_colliding_id(self):
        registry = _registry()
        first = registry.new_component("Pet")
        other = Component(id=first.id, name="Owner")
        stored = registry.merge(other)
        assert stored is other
        assert other.id != first.id

    def test_merge_same_object_twice_is_noop(self):
        registry = _registry()
        comp = Component(name="Pet")
        registry.merge(comp)
        registry.merge(comp)
        assert len(registry) == 1


class TestLookup:
    def test_find_by_name_is_case_insensitive(self):
        registry = _registry()
        comp = registry.new_component("PetOwner")
        assert registry.find_component_by_name("petowner") is comp
        assert registry.find_component_by_name("missing") is None

    def test_resolve_ref_by_id_and_name(self):
        registry = _registry()
        owner = registry.new_component("Owner")
        assert registry.resolve_ref(Ref.to_component(owner)) is owner
        assert registry.resolve_ref(Ref.to_component("Owner")) is owner
        assert registry.resolve_ref(Ref.to_primitive("string")) is None
        assert registry.resolve_ref(None) is None

    def test_primitive_ref_must_be_a_type_name(self):
        with pytest.raises(ValueError):
            Ref(kind="primitive", value=3)

    def test_find_components_by_ids_skips_unknown(self):
        registry = _registry()
        pet = registry.new_component("Pet")
        found = registry.find_components_by_ids([Component(id=pet.id, name="Pet"), Component(id=999, name="Gone")])
        assert found == [pet]

    def test_filters_by_source(self):
        registry = _registry()
        registry.new_component("Pet", source=ComponentSource.COMPONENT)
        registry.new_component("Limit", source=ComponentSource.PARAMETER)
        registry.new_component("Body", source=ComponentSource.REQUEST_BODY_INLINE)
        assert [c.name for c in registry.get_defined_components()] == ["Pet"]
        assert [c.name for c in registry.get_parameter_components()] == ["Limit"]
        assert [c.name for c in registry.get_inlined_components()] == ["Body"]

    def test_source_labels(self):
        assert str(ComponentSource.COMPONENT) == "Defined Component"


class TestLatest:
    def test_highest_version_is_latest(self):
        registry = _registry()
        old = registry.new_component("Pet", version="1.0", source_doc="v1.yaml")
        new = registry.new_component("Pet", version="2.0", source_doc="v2.yaml")
        registry.refresh_latest()
        assert new.latest is True
        assert old.latest is False
        assert registry.get_latest_components() == [new]
