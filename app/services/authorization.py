"""Authorization collaborator.

Answers "may this principal administer X" from token roles and the
catalog's own ownership data.  No user ids are hard-coded anywhere.
"""

from __future__ import annotations

import logging
from typing import Protocol

from app.models.assessment import Test
from app.models.course import Course
from app.models.principal import Principal

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class Authorization(Protocol):
    def is_admin(self, principal: Principal) -> bool: ...
    def has_course_admin_rights(self, principal: Principal, course: Course) -> bool: ...
    def has_test_admin_rights(self, principal: Principal, test: Test) -> bool: ...


class RoleAuthorization:
    def is_admin(self, principal: Principal) -> bool:
        return principal.has_role(ADMIN_ROLE)

    def has_course_admin_rights(self, principal: Principal, course: Course) -> bool:
        if self.is_admin(principal):
            return True
        return principal.user_id == course.author_id or principal.user_id in course.admin_ids

    def has_test_admin_rights(self, principal: Principal, test: Test) -> bool:
        if self.is_admin(principal):
            return True
        return principal.user_id == test.author_id


authorization: Authorization = RoleAuthorization()
