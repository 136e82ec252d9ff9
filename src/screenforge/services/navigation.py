"""Routes and menu built from the generated screens."""

from typing import Any

from screenforge.schemas.navigation import Menu, MenuGroup, MenuItem, RouteEntry
from screenforge.schemas.screen import ScreenSchema
from screenforge.utils import to_kebab, to_label


def infer_route_group(operation: dict[str, Any], path_key: str) -> str | None:
    """First tag of the operation, else the first literal path segment."""
    tags = operation.get("tags")
    if isinstance(tags, list) and tags:
        tag = str(tags[0]).strip()
        if tag:
            return tag

    for part in str(path_key or "").split("/"):
        part = part.strip()
        if part and not part.startswith("{") and not part.endswith("}"):
            return part
    return None


def build_route(screen: ScreenSchema, operation: dict[str, Any]) -> RouteEntry:
    operation_id = str(operation["operationId"])
    return RouteEntry(
        path=operation_id,
        operation_id=operation_id,
        label=to_label(screen.entity or operation_id),
        group=infer_route_group(operation, str(operation.get("path", ""))),
    )


def build_menu(routes: list[RouteEntry]) -> Menu:
    """Group routes into menu sections, in order of first appearance."""
    menu = Menu()
    groups: dict[str, MenuGroup] = {}

    for route in routes:
        item = MenuItem(
            id=route.operation_id,
            label=to_label(route.label or route.operation_id),
            route=route.path,
        )
        if not route.group:
            menu.ungrouped.append(item)
            continue

        group_id = to_kebab(route.group)
        group = groups.get(group_id)
        if group is None:
            group = MenuGroup(id=group_id, label=to_label(route.group))
            groups[group_id] = group
            menu.groups.append(group)
        group.items.append(item)

    return menu
