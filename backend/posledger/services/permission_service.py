# Overview: Service-layer operations for permissions; role lookups and seeding.

"""
Permission checking

- Fail closed: deny unless the user's role grants the code
- Roles flagged bypass_all_permissions pass every check
"""

from ..extensions import db
from ..models import User, Role, RolePermission, Permission
from ..permissions import PERMISSION_DEFINITIONS, DEFAULT_ROLES


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def get_user_permissions(user_id: int) -> set[str]:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.role_id:
        return set()

    if user.role and user.role.bypass_all_permissions:
        rows = db.session.query(Permission.code).filter(Permission.is_active.is_(True)).all()
        return {code for (code,) in rows}

    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == user.role_id, Permission.is_active.is_(True))
        .all()
    )
    return {code for (code,) in rows}


def user_has_permission(user_id: int, permission_code: str) -> bool:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        return False
    if user.role and user.role.bypass_all_permissions:
        return True
    return permission_code in get_user_permissions(user_id)


def require_permission(user_id: int, permission_code: str) -> None:
    if not user_has_permission(user_id, permission_code):
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


def initialize_permissions() -> int:
    """Create missing Permission rows. Safe to call repeatedly."""
    created = 0
    for code, name, description, category in PERMISSION_DEFINITIONS:
        if db.session.query(Permission).filter_by(code=code).first():
            continue
        db.session.add(Permission(code=code, name=name, description=description, category=category))
        created += 1
    db.session.commit()
    return created


def create_default_roles() -> int:
    """Create default roles and their grants. Safe to call repeatedly."""
    initialize_permissions()
    permissions = {p.code: p for p in db.session.query(Permission).all()}

    created = 0
    for role_name, (description, bypass, codes) in DEFAULT_ROLES.items():
        role = db.session.query(Role).filter_by(name=role_name).first()
        if not role:
            role = Role(name=role_name, description=description, bypass_all_permissions=bypass)
            db.session.add(role)
            db.session.flush()
            created += 1

        granted = {
            rp.permission_id
            for rp in db.session.query(RolePermission).filter_by(role_id=role.id).all()
        }
        for code in codes:
            permission = permissions[code]
            if permission.id not in granted:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))

    db.session.commit()
    return created
