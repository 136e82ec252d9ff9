"""Pydantic models for the routes.json and menu.json artifacts."""

from pydantic import BaseModel, Field


class RouteEntry(BaseModel):
    """One generated screen route. The URL path is the operationId."""

    path: str
    operation_id: str = Field(serialization_alias="operationId")
    label: str
    group: str | None = None


class MenuItem(BaseModel):
    id: str
    label: str
    route: str


class MenuGroup(BaseModel):
    id: str = Field(description="Kebab-cased group name")
    label: str
    items: list[MenuItem] = Field(default_factory=list)


class Menu(BaseModel):
    """Initial navigation menu, grouped by tag or first path segment."""

    groups: list[MenuGroup] = Field(default_factory=list)
    ungrouped: list[MenuItem] = Field(default_factory=list)
