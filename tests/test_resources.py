import pytest

from api_codegen.errors import ValidationError
from api_codegen.ids import IdGenerator
from api_codegen.model.merge import MergePolicy
from api_codegen.model.resource import (
    Parameter,
    ParameterIn,
    Resource,
    ResourceRegistry,
    make_resource_name,
    make_root,
    make_unique_id,
)


def _registry(policy: MergePolicy = MergePolicy.KEEP_EXISTING) -> ResourceRegistry:
    return ResourceRegistry(IdGenerator(), policy)


class TestHelpers:
    def test_make_unique_id(self):
        assert make_unique_id("/users/{userId}/orders", "get") == "get:users/userId/orders"

    def test_make_unique_id_drops_query(self):
        assert make_unique_id("/users?limit=10", "get") == "get:users"

    def test_make_root(self):
        assert make_root("/users/{id}/grades") == "/users"
        assert make_root("/users") == "/users"

    def test_make_resource_name(self):
        assert make_resource_name("list pets", "get", "/pets") == "listPets"
        assert make_resource_name("", "get", "/users/{id}") == "getUsersId"


class TestNewResource:
    def test_fields_are_derived(self):
        registry = _registry()
        res = registry.new_resource("/users/{userId}/orders", "get", owner="Users API")
        assert res.resource_id == "get:users/userId/orders"
        assert res.root == "/users"
        assert res.id > 0

    @pytest.mark.parametrize("path,method", [("", "get"), ("/users", "")])
    def test_missing_path_or_method_is_rejected(self, path, method):
        registry = _registry()
        with pytest.raises(ValidationError):
            registry.new_resource(path, method)
        assert len(registry) == 0

    def test_find_and_remove(self):
        registry = _registry()
        registry.new_resource("/users", "get", owner="a")
        registry.new_resource("/users", "get", owner="b")
        assert registry.find_resource("/users", "get", "b").owner == "b"
        assert registry.find_resource("/users", "post", "a") is None

        registry.remove_resource("get:users")
        assert len(registry) == 0

    def test_find_by_name(self):
        registry = _registry()
        res = registry.new_resource("/pets", "get", name="listPets")
        assert registry.find_resource_by_name("LISTPETS") is res
        assert registry.find_resource_by_id(res.id) is res

    def test_hierarchy_groups_by_root(self):
        registry = _registry()
        registry.new_resource("/users", "get")
        registry.new_resource("/users/{id}", "get")
        registry.new_resource("/pets", "get")
        groups = registry.get_resources_by_hierarchy()
        assert sorted(groups) == ["/pets", "/users"]
        assert len(groups["/users"]) == 2


class TestMerge:
    def test_same_owner_keeps_first(self):
        registry = _registry()
        first = registry.merge(Resource(path="/users", method="get", owner="api", description="first"))
        second = registry.merge(Resource(path="/users", method="get", owner="api", description="second"))
        assert second is first
        assert first.description == "first"
        assert len(registry) == 1

    def test_different_owners_are_kept(self):
        registry = _registry()
        registry.merge(Resource(path="/users", method="get", owner="a"))
        registry.merge(Resource(path="/users", method="get", owner="b"))
        assert len(registry) == 2

    def test_versions_are_kept_side_by_side(self):
        registry = _registry()
        v1 = registry.merge(Resource(path="/users", method="get", owner="a", version="1.0"))
        v2 = registry.merge(Resource(path="/users", method="get", owner="a", version="2.0"))
        registry.refresh_latest()
        assert len(registry.find_resources("/users", "get", "a")) == 2
        assert v2.latest and not v1.latest
        assert registry.get_latest_resources() == [v2]

    def test_replace_policy(self):
        registry = _registry(MergePolicy.REPLACE)
        stored = registry.merge(Resource(path="/users", method="get", description="old"))
        registry.merge(Resource(path="/users", method="get", description="new"))
        assert stored.description == "new"

    def test_union_policy_merges_parameters(self):
        registry = _registry(MergePolicy.UNION)
        stored = registry.merge(
            Resource(path="/users", method="get", parameters=[Parameter(name="limit")])
        )
        registry.merge(
            Resource(
                path="/users",
                method="get",
                summary="List users",
                parameters=[Parameter(name="limit"), Parameter(name="X-Trace", in_=ParameterIn.HEADER)],
            )
        )
        assert stored.summary == "List users"
        assert [p.name for p in stored.parameters] == ["limit", "X-Trace"]

    def test_parameter_in_alias(self):
        param = Parameter.model_validate({"name": "petId", "in": "path"})
        assert param.in_ == ParameterIn.PATH
