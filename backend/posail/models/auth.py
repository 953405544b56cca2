from __future__ import annotations

from ..extensions import db
from posail.time_utils import to_utc_z


class User(db.Model):
    """
    Staff account.

    The role and the bound local are copied into the identity token at login
    and are immutable for that token's lifetime. local_id is nullable for
    superadmins and for admins that pick a local per request.
    """
    __tablename__ = "usuarios"
    __table_args__ = (
        db.Index("ix_usuarios_local_id", "local_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    rol = db.Column(db.String(32), nullable=False, default="cajero")
    local_id = db.Column(db.Integer, db.ForeignKey("locales.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    local = db.relationship("Local", backref=db.backref("usuarios", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} rol={self.rol!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nombre": self.nombre,
            "email": self.email,
            "rol": self.rol,
            "local_id": self.local_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
