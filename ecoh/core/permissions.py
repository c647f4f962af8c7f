from __future__ import annotations

from functools import wraps

from flask import abort
from flask_login import current_user

from ecoh.core.models import RolUsuario

# Cada rol incluye los permisos de los roles de menor nivel
ROLE_LEVELS: dict[RolUsuario, int] = {
    RolUsuario.READ: 1,
    RolUsuario.WRITE: 2,
    RolUsuario.ADMIN: 3,
}


def has_permission(user_role: RolUsuario | str | None, required: RolUsuario | str) -> bool:
    try:
        user_level = ROLE_LEVELS[RolUsuario(user_role)]
        required_level = ROLE_LEVELS[RolUsuario(required)]
    except ValueError:
        return False
    return user_level >= required_level


def require_login(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        return fn(*args, **kwargs)

    return wrapper


def require_role(role: RolUsuario | str):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not has_permission(current_user.rol, role):
                abort(403)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
