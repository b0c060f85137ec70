# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication

Passwords are hashed with bcrypt (cost factor 12) after a strength check.
Session tokens are handled separately (see session_service.py).
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, Role
from posledger.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserError(Exception):
    """Raised for user creation / role assignment errors."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with upper, lower, digit and special character.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int = 12) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in DB
        return False


def authenticate(username: str, password: str) -> User | None:
    """Returns the active user for valid credentials, else None."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def create_user(
    *,
    username: str,
    name: str,
    password: str,
    role_name: str = "cashier",
    email: str | None = None,
    rounds: int = 12,
) -> User:
    if db.session.query(User).filter_by(username=username).first():
        raise UserError(f"Username {username!r} already exists")

    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise UserError(f"Role {role_name!r} not found")

    user = User(
        username=username,
        name=name,
        email=email,
        password_hash=hash_password(password, rounds=rounds),
        role_id=role.id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user
