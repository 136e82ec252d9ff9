"""Tests for route and menu building."""

from screenforge.schemas.navigation import RouteEntry
from screenforge.schemas.screen import ScreenSchema
from screenforge.services.navigation import build_menu, build_route, infer_route_group


class TestRouteGroup:
    def test_first_tag_wins(self):
        assert infer_route_group({"tags": [" Billing ", "Users"]}, "/users") == "Billing"

    def test_falls_back_to_first_literal_segment(self):
        assert infer_route_group({}, "/{tenant}/orders/{id}") == "orders"
        assert infer_route_group({"tags": [""]}, "/orders") == "orders"

    def test_no_group(self):
        assert infer_route_group({}, "/{id}") is None
        assert infer_route_group({}, "") is None


class TestBuildRoute:
    def test_route_uses_operation_id_as_path(self):
        route = build_route(
            ScreenSchema(entity="user_accounts"),
            {"operationId": "ListAccounts", "path": "/accounts"},
        )

        assert route.path == "ListAccounts"
        assert route.operation_id == "ListAccounts"
        assert route.label == "User Accounts"
        assert route.group == "accounts"

    def test_label_falls_back_to_operation_id(self):
        route = build_route(ScreenSchema(), {"operationId": "getHealth", "path": "/{x}"})

        assert route.label == "Get Health"
        assert route.group is None

    def test_serialized_with_camel_case_operation_id(self):
        route = RouteEntry(path="A", operation_id="A", label="A")
        assert route.model_dump(by_alias=True)["operationId"] == "A"


class TestBuildMenu:
    def test_groups_in_order_of_first_appearance(self):
        routes = [
            RouteEntry(path="ListOrders", operation_id="ListOrders", label="Orders", group="Orders"),
            RouteEntry(path="Health", operation_id="Health", label="Health"),
            RouteEntry(path="Users", operation_id="Users", label="Users", group="userAdmin"),
            RouteEntry(path="GetOrder", operation_id="GetOrder", label="Order", group="orders"),
        ]
        menu = build_menu(routes)

        assert [g.id for g in menu.groups] == ["orders", "user-admin"]
        assert [g.label for g in menu.groups] == ["Orders", "User Admin"]
        assert [i.id for i in menu.groups[0].items] == ["ListOrders", "GetOrder"]
        assert [i.route for i in menu.ungrouped] == ["Health"]

    def test_empty(self):
        menu = build_menu([])
        assert menu.groups == []
        assert menu.ungrouped == []
