from enum import Enum

from store.exceptions import InvalidArgument


class Role(str, Enum):
    ADMIN = 'admin'
    TEACHER = 'teacher'
    SPECIALS = 'specials'
    ACHIEVEMENT = 'achievement'

    def __str__(self):
        return self.value


ROLE_CHOICES = [(role.value, role.name.title()) for role in Role]


def parse_roles(values):
    """Convert raw role strings into a tuple of ``Role``, keeping their order."""
    if values is None:
        return ()
    if isinstance(values, (str, Role)):
        values = [values]
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise InvalidArgument("Roles must be a list of role names")
    roles = []
    invalid = []
    for value in values:
        try:
            role = Role(value)
        except ValueError:
            invalid.append(str(value))
            continue
        if role not in roles:
            roles.append(role)
    if invalid:
        raise InvalidArgument(f"Invalid roles: {', '.join(invalid)}")
    return tuple(roles)


def has_role(roles, role):
    return Role(role) in (roles or ())


def has_any_role(roles, required):
    held = set(roles or ())
    return any(Role(role) in held for role in required)
