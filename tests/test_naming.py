import pytest

from api_codegen.naming import (
    remove_whitespace_and_caps,
    to_camel_case,
    uri_path_param_to_angle_brackets_param,
    uri_path_param_to_braces_param,
    uri_path_param_to_colon_param,
    uri_path_param_to_lower_camel_param,
)


class TestCamelCase:
    def test_lower_camel(self):
        assert to_camel_case("user-id") == "userId"
        assert to_camel_case("UserName") == "userName"

    def test_init_case(self):
        assert to_camel_case("user_id", True) == "UserId"

    def test_remove_whitespace_and_caps(self):
        assert remove_whitespace_and_caps("list all pets") == "listAllPets"


class TestPathParamTransforms:
    @pytest.mark.parametrize("token", ["{userId}", "{userId*}", "{.userId}", "{;userId*}", "{?userId}"])
    def test_colon_accepts_every_token_form(self, token):
        assert uri_path_param_to_colon_param(f"/users/{token}/orders") == "/users/:userId/orders"

    def test_braces(self):
        assert uri_path_param_to_braces_param("/users/{.userId*}") == "/users/{userId}"

    def test_angle_brackets(self):
        assert uri_path_param_to_angle_brackets_param("/users/{user-id}") == "/users/<user_id>"

    def test_lower_camel(self):
        assert uri_path_param_to_lower_camel_param("/users/{user-id}/house") == "/users/:userId/house"

    def test_several_params_in_one_path(self):
        path = "/orgs/{orgId}/users/{userId}"
        assert uri_path_param_to_colon_param(path) == "/orgs/:orgId/users/:userId"

    def test_path_without_params_is_unchanged(self):
        assert uri_path_param_to_colon_param("/health") == "/health"

    @pytest.mark.parametrize(
        "transform",
        [
            uri_path_param_to_colon_param,
            uri_path_param_to_braces_param,
            uri_path_param_to_angle_brackets_param,
            uri_path_param_to_lower_camel_param,
        ],
    )
    def test_transforms_are_idempotent(self, transform):
        once = transform("/users/{user-id}/orders/{orderId*}")
        assert transform(once) == once
