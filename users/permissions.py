from rest_framework import permissions

from .roles import Role
from .session import get_auth_session


class RolePermission(permissions.BasePermission):
    """
    Role based permission on tracker claims.
    - Achievement staff only read
    - Teachers and specials record behavior data but do not delete
    - Admins can do everything
    """

    role_map = {
        Role.ACHIEVEMENT: ['view'],
        Role.TEACHER: ['view', 'change', 'create'],
        Role.SPECIALS: ['view', 'change', 'create'],
        Role.ADMIN: ['view', 'change', 'create', 'delete'],
    }

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        # map method to action
        if request.method in permissions.SAFE_METHODS:
            action = 'view'
        elif request.method == 'POST':
            action = 'create'
        elif request.method in ('PUT', 'PATCH'):
            action = 'change'
        elif request.method == 'DELETE':
            action = 'delete'
        else:
            action = 'view'

        roles = get_auth_session(request).roles
        return any(action in self.role_map.get(role, []) for role in roles)


class IsAdmin(permissions.BasePermission):
    message = 'Insufficient permissions: admin role required'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return get_auth_session(request).has_role(Role.ADMIN)


class IsSchoolMember(permissions.BasePermission):
    """Only staff whose claims name the school in the URL may reach it."""

    message = 'Not a member of this school'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        school_id = view.kwargs.get('school_id')
        if school_id is None:
            return True
        claims = get_auth_session(request).claims
        return claims is not None and claims.school_id == school_id
