from __future__ import annotations

from dataclasses import dataclass, field, replace

from stockroom.validation import normalize_bool, normalize_text


class UserRole:
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    OPERATOR = "OPERATOR"
    GUEST = "GUEST"

    ALL = (ADMIN, MANAGER, OPERATOR, GUEST)


def normalize_role(raw) -> str:
    """Unknown or missing roles fail closed to GUEST."""
    role = normalize_text(raw).upper()
    return role if role in UserRole.ALL else UserRole.GUEST


@dataclass(frozen=True)
class User:
    """
    Snapshot user row. Email is the unique key.

    The credential is kept out of repr so it never lands in logs.
    """
    email: str
    name: str = ""
    role: str = UserRole.GUEST
    active: bool = False
    password: str = field(default="", repr=False)

    @classmethod
    def from_dict(cls, raw: dict) -> "User":
        return cls(
            email=normalize_text(raw.get("email")),
            name=normalize_text(raw.get("name")),
            role=normalize_role(raw.get("role")),
            active=normalize_bool(raw.get("active")),
            password=normalize_text(raw.get("password")),
        )

    @property
    def is_guest(self) -> bool:
        return self.role == UserRole.GUEST

    def with_password(self, password_hash: str) -> "User":
        return replace(self, password=password_hash)

    def to_dict(self, include_password: bool = False) -> dict:
        data = {
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "active": self.active,
        }
        if include_password:
            data["password"] = self.password
        return data


GUEST_USER = User(email="public@guest.com", name="Guest", role=UserRole.GUEST, active=True)
