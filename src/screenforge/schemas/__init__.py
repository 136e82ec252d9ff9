"""Pydantic models for stored screenforge artifacts."""

from screenforge.schemas.navigation import Menu, MenuGroup, MenuItem, RouteEntry
from screenforge.schemas.screen import (
    Actions,
    FieldDescriptor,
    Layout,
    Meta,
    OperationRef,
    PrimaryAction,
    ResponseHints,
    ScreenKind,
    ScreenSchema,
    TableColumn,
    dump_snapshot,
    load_screen,
)

__all__ = [
    "Actions",
    "FieldDescriptor",
    "Layout",
    "Menu",
    "MenuGroup",
    "MenuItem",
    "Meta",
    "OperationRef",
    "PrimaryAction",
    "ResponseHints",
    "RouteEntry",
    "ScreenKind",
    "ScreenSchema",
    "TableColumn",
    "dump_snapshot",
    "load_screen",
]
