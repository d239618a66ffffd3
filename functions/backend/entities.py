"""
Entity descriptors shared by the models and the routers.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Entity:
    name: str
    label: str
    table: str
    key: str
    form_fields: tuple[str, ...]
    allow_create: bool = True

    @property
    def path(self) -> str:
        return f"/{self.name}"


ADMINS = Entity(
    name="admins",
    label="admin",
    table="admins",
    key="id",
    form_fields=("name", "email", "password"),
)

MEMBERS = Entity(
    name="members",
    label="member",
    table="members",
    key="id",
    form_fields=("groupId", "userEmail"),
)

USERS = Entity(
    name="users",
    label="user",
    table="users",
    key="email",
    form_fields=("email", "password"),
)

# Message records are written by other services; the UI only edits them.
MSGS = Entity(
    name="msgs",
    label="msg",
    table="msgs",
    key="id",
    form_fields=("userEmail", "content"),
    allow_create=False,
)

ENTITIES: tuple[Entity, ...] = (ADMINS, MEMBERS, USERS, MSGS)
