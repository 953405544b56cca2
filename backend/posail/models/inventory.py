from __future__ import annotations

from ..extensions import db
from posail.time_utils import to_utc_z, utcnow


class InsumoCategoria(db.Model):
    __tablename__ = "insumo_categorias"
    __table_args__ = (
        db.UniqueConstraint("local_id", "nombre", name="uq_insumo_categorias_local_nombre"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    local_id = db.Column(db.Integer, db.ForeignKey("locales.id"), nullable=False, index=True)
    nombre = db.Column(db.String(80), nullable=False)
    orden = db.Column(db.Integer, nullable=False, default=0)
    creado_en = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "local_id": self.local_id,
            "nombre": self.nombre,
            "orden": self.orden,
            "creado_en": to_utc_z(self.creado_en),
        }


class Insumo(db.Model):
    """
    Supply item tracked by inventory.

    stock_total is a cached aggregate: it always equals the sum of cantidad
    over the item's ACTIVE lots. It is only ever changed by the ledger
    service (movement postings and lot show/hide), never by CRUD updates.
    """
    __tablename__ = "insumos"
    __table_args__ = (
        db.UniqueConstraint("local_id", "nombre", name="uq_insumos_local_nombre"),
        db.Index("ix_insumos_local_orden", "local_id", "orden"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    local_id = db.Column(db.Integer, db.ForeignKey("locales.id"), nullable=False, index=True)
    categoria_id = db.Column(db.Integer, db.ForeignKey("insumo_categorias.id"), nullable=True)

    nombre = db.Column(db.String(120), nullable=False)
    descripcion = db.Column(db.String(300), nullable=True)
    unidad = db.Column(db.String(20), nullable=False)

    stock_total = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    stock_minimo = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    alerta_vencimiento_dias = db.Column(db.Integer, nullable=False, default=7)

    orden = db.Column(db.Integer, nullable=False, default=0)
    activo = db.Column(db.Boolean, nullable=False, default=True)

    creado_en = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    actualizado_en = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    local = db.relationship("Local", backref=db.backref("insumos", lazy=True))
    categoria = db.relationship("InsumoCategoria", backref=db.backref("insumos", lazy=True))

    def __repr__(self) -> str:
        return f"<Insumo id={self.id} nombre={self.nombre!r} local_id={self.local_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "local_id": self.local_id,
            "categoria_id": self.categoria_id,
            "nombre": self.nombre,
            "descripcion": self.descripcion or "",
            "unidad": self.unidad,
            "stock_total": float(self.stock_total or 0),
            "stock_minimo": float(self.stock_minimo or 0),
            "alerta_vencimiento_dias": self.alerta_vencimiento_dias,
            "orden": self.orden,
            "activo": self.activo,
            "creado_en": to_utc_z(self.creado_en),
            "actualizado_en": to_utc_z(self.actualizado_en),
        }


class InsumoLote(db.Model):
    """
    A batch of an insumo.

    Lots are never deleted: they can reach zero and stay as audit trail.
    cantidad is only changed by movement postings.
    """
    __tablename__ = "insumo_lotes"
    __table_args__ = (
        db.Index("ix_insumo_lotes_fifo", "insumo_id", "local_id", "fecha_ingreso"),
        db.CheckConstraint("cantidad >= 0", name="ck_insumo_lotes_cantidad_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    insumo_id = db.Column(db.Integer, db.ForeignKey("insumos.id"), nullable=False, index=True)
    local_id = db.Column(db.Integer, db.ForeignKey("locales.id"), nullable=False, index=True)

    lote = db.Column(db.String(80), nullable=True)
    fecha_vencimiento = db.Column(db.DateTime(timezone=True), nullable=True)
    cantidad = db.Column(db.Numeric(14, 3), nullable=False)
    fecha_ingreso = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    activo = db.Column(db.Boolean, nullable=False, default=True)

    insumo = db.relationship("Insumo", backref=db.backref("lotes", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "insumo_id": self.insumo_id,
            "local_id": self.local_id,
            "lote": self.lote,
            "fecha_vencimiento": to_utc_z(self.fecha_vencimiento),
            "cantidad": float(self.cantidad),
            "fecha_ingreso": to_utc_z(self.fecha_ingreso),
            "activo": self.activo,
        }


class InsumoMovimiento(db.Model):
    """
    Immutable stock ledger entry.

    IMMUTABLE: Never update or delete. Each row is written in the same
    transaction as its lot and insumo mutations.
    """
    __tablename__ = "insumo_movimientos"
    __table_args__ = (
        db.Index("ix_insumo_movimientos_local_fecha", "local_id", "fecha"),
        db.Index("ix_insumo_movimientos_insumo_fecha", "insumo_id", "fecha"),
        db.CheckConstraint("cantidad > 0", name="ck_insumo_movimientos_cantidad_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    insumo_id = db.Column(db.Integer, db.ForeignKey("insumos.id"), nullable=False)
    local_id = db.Column(db.Integer, db.ForeignKey("locales.id"), nullable=False, index=True)
    lote_id = db.Column(db.Integer, db.ForeignKey("insumo_lotes.id"), nullable=True, index=True)

    tipo = db.Column(db.String(10), nullable=False)  # entrada | salida
    cantidad = db.Column(db.Numeric(14, 3), nullable=False)
    motivo = db.Column(db.String(200), nullable=True)
    nota = db.Column(db.String(300), nullable=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey("usuarios.id"), nullable=True)
    fecha = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    insumo = db.relationship("Insumo", backref=db.backref("movimientos", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "insumo_id": self.insumo_id,
            "local_id": self.local_id,
            "lote_id": self.lote_id,
            "tipo": self.tipo,
            "cantidad": float(self.cantidad),
            "motivo": self.motivo or "",
            "nota": self.nota or "",
            "usuario_id": self.usuario_id,
            "fecha": to_utc_z(self.fecha),
        }


class InsumoAlertaDestinatario(db.Model):
    """Staff member who receives a local's insumo alert digest."""
    __tablename__ = "insumo_alerta_destinatarios"
    __table_args__ = (
        db.UniqueConstraint("local_id", "usuario_id", name="uq_insumo_alerta_destinatarios_local_usuario"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    local_id = db.Column(db.Integer, db.ForeignKey("locales.id"), nullable=False, index=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey("usuarios.id"), nullable=False)
    creado_en = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
