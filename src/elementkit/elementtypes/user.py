"""Users: one locale, custom fields without a title."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..domain.entities import UserRecord
from ..domain.models import Element, User
from ..query.params import parse_param
from ..shared.types import ElementStatus
from .base import BaseElementType

if TYPE_CHECKING:
    from ..domain.criteria import ElementCriteria
    from ..domain.fields import FieldLayout
    from ..query.element_query import ElementQuery


class UserElementType(BaseElementType):
    handle = "User"
    name = "Users"
    model_class = User

    localized = False
    titles = False

    def get_statuses(self) -> dict[str, str]:
        return {
            ElementStatus.ENABLED.value: "Enabled",
            ElementStatus.LOCKED.value: "Locked",
            ElementStatus.DISABLED.value: "Disabled",
        }

    def define_criteria_attributes(self) -> dict[str, Any]:
        return {"username": None, "email": None}

    def _join_users(self, query: ElementQuery):
        users = UserRecord.__table__
        query.join("users", users, users.c.id == query.elements.c.id)
        return users

    def get_element_query_status_condition(self, query: ElementQuery, status: str):
        if status == ElementStatus.LOCKED.value:
            return self._join_users(query).c.locked.is_(True)
        return None

    def modify_elements_query(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        users = self._join_users(query)
        query.add_select(username=users.c.username, email=users.c.email, locked=users.c.locked)

        query.and_where(parse_param(users.c.username, criteria.params.get("username")))
        query.and_where(parse_param(users.c.email, criteria.params.get("email")))
        if criteria.ref is not None:
            query.and_where(parse_param(users.c.username, criteria.ref))
        return True

    def default_order(self, query: ElementQuery) -> str:
        return "username asc"

    def get_field_layout(self, element: Element) -> FieldLayout | None:
        if not element.field_layout_id:
            return self.elements.fields.get_layout_by_type(self.handle)
        return super().get_field_layout(element)

    def validate(self, element: Element) -> bool:
        if not element.username:
            element.add_error("username", "Username cannot be blank.")
            return False
        return True

    def save_type_record(self, element: Element, is_new_element: bool) -> None:
        record = self.elements.db.get(UserRecord, element.id)
        if record is None:
            record = UserRecord(id=element.id)
            self.elements.db.add(record)
        record.username = element.username
        record.email = element.email
        record.locked = bool(element.locked)
        self.elements.db.flush()
