from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ACCOUNT_TYPES = ("admin", "coadmin", "staff")


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Email is globally unique and always stored lower-cased.

    account_type records how the account was first created (store founder vs.
    joined as co-admin/staff). It is advisory only: real authority is the
    per-store role held in UserStoreRole.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)

    # Bcrypt hashed password; never serialized
    password_hash = db.Column(db.String(255), nullable=False)

    account_type = db.Column(db.String(16), nullable=False, default="staff")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "account_type": self.account_type,
            "created_at": to_utc_z(self.created_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}
