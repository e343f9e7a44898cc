import json
from pathlib import Path

import pytest

from api_codegen.errors import LoadError
from api_codegen.ids import IdGenerator
from api_codegen.loaders.document import ExtensionLoader, ModelDocumentLoader

FIXTURES = Path(__file__).parent / "fixtures"
PETSTORE = str(FIXTURES / "petstore.yaml")


class TestModelDocumentLoader:
    def test_load_file(self):
        loaded = ModelDocumentLoader(IdGenerator()).load(PETSTORE, {})
        assert len(loaded.resources) == 3
        assert len(loaded.components) == 3
        assert loaded.workflows.find_workflow_by_id("show-pet") is not None

    def test_location_is_recorded_as_source_doc(self):
        loaded = ModelDocumentLoader(IdGenerator()).load(PETSTORE, {})
        assert {c.source_doc for c in loaded.components} == {PETSTORE}
        assert {r.source_doc for r in loaded.resources} == {PETSTORE}

    def test_aliases_shorten_owner_and_source_doc(self):
        shared = {"aliases": {"Petstore": "pets", PETSTORE: "petstore"}}
        loaded = ModelDocumentLoader(IdGenerator()).load(PETSTORE, shared)
        assert {r.owner for r in loaded.resources} == {"pets"}
        assert {c.source_doc for c in loaded.components} == {"petstore"}

    def test_nested_entities_are_stamped(self):
        shared = {"aliases": {"Petstore": "pets"}}
        loaded = ModelDocumentLoader(IdGenerator()).load(PETSTORE, shared)

        show = loaded.resources.find_resource("/pets/{petId}", "get", "pets")
        assert show.responses[0].response_bodies[0].schema_.source_doc == PETSTORE
        step = loaded.workflows.find_workflow_by_id("show-pet").steps[0]
        assert step.resource.owner == "pets"
        assert step.resource.source_doc == PETSTORE

    def test_uses_shared_content(self):
        shared = {"content": b"resources:\n  - {path: /health, method: get}\n"}
        loaded = ModelDocumentLoader(IdGenerator()).load("in-memory", shared)
        assert loaded.resources.all()[0].path == "/health"

    def test_rejects_other_documents(self, tmp_path):
        doc = tmp_path / "openapi.yaml"
        doc.write_text("openapi: 3.0.0\ninfo:\n  title: Petstore\n")
        with pytest.raises(LoadError):
            ModelDocumentLoader().load(str(doc), {})

    def test_invalid_entities(self):
        shared = {"content": b"resources:\n  - {path: /health}\n"}
        with pytest.raises(LoadError) as exc_info:
            ModelDocumentLoader().load("broken.yaml", shared)
        assert exc_info.value.source == "broken.yaml"


class TestExtensionLoader:
    def test_dict_payload(self):
        loader = ExtensionLoader(lambda location, shared: {"components": [{"name": "Token"}]})
        loaded = loader.load("plugin://auth", {})
        assert loaded.components.find_component_by_name("Token") is not None

    def test_text_payload(self):
        payload = json.dumps({"resources": [{"path": "/login", "method": "post"}]})
        loaded = ExtensionLoader(lambda location, shared: payload).load("plugin://auth", {})
        assert len(loaded.resources) == 1

    def test_nothing_returned(self):
        loaded = ExtensionLoader(lambda location, shared: None).load("plugin://auth", {})
        assert loaded.is_empty()

    def test_wrong_shape(self):
        with pytest.raises(LoadError):
            ExtensionLoader(lambda location, shared: ["not", "a", "model"]).load("plugin://auth", {})
