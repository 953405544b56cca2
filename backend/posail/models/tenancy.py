from __future__ import annotations

from ..extensions import db
from posail.time_utils import to_utc_z


class Local(db.Model):
    """
    Tenant root: every store/branch is a Local.

    All scoped data (insumos, lotes, movimientos, categorias, users) carries a
    local_id. No data may cross local boundaries except through superadmin
    operations.
    """
    __tablename__ = "locales"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(80), nullable=False, unique=True)
    direccion = db.Column(db.String(160), nullable=True)
    telefono = db.Column(db.String(40), nullable=True)
    correo = db.Column(db.String(120), nullable=True)

    creado_en = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Local id={self.id} nombre={self.nombre!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nombre": self.nombre,
            "direccion": self.direccion or "",
            "telefono": self.telefono or "",
            "correo": self.correo or "",
            "creado_en": to_utc_z(self.creado_en),
        }
