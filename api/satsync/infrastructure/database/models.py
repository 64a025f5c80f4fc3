"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    LargeBinary,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from satsync.infrastructure.database.session import Base
from satsync.shared.constants.sat_constants import CURRENT_SCHEMA_VERSION

MONEY = Numeric(18, 2)


class SatRequestModel(Base):
    """
    Solicitud de descarga masiva.
    Los errores por etapa y los contadores se guardan como columnas planas.
    """

    __tablename__ = "sat_requests"
    __table_args__ = (
        Index("ix_sat_requests_subject_direction", "subject_id", "direction"),
    )

    id = Column(String(36), primary_key=True)
    subject_id = Column(String(13), nullable=False, index=True)
    direction = Column(String(20), nullable=False)
    date_from = Column(Date, nullable=False)
    date_to = Column(Date, nullable=False)
    external_job_id = Column(String(255), nullable=True, index=True)
    raw_status = Column(String(50), nullable=False, default="requested")
    package_ids = Column(JSON, nullable=True)  # Lista ordenada de IdsPaquetes

    completed = Column(Boolean, nullable=False, default=False)
    packages_downloaded = Column(Boolean, nullable=False, default=False)
    packages_processed = Column(Boolean, nullable=False, default=False)
    processed_with_errors = Column(Boolean, nullable=False, default=False)

    request_error = Column(Text, nullable=True)
    verify_error = Column(Text, nullable=True)
    download_error = Column(Text, nullable=True)
    processing_error = Column(Text, nullable=True)

    processed_count = Column(Integer, nullable=False, default=0)
    existing_count = Column(Integer, nullable=False, default=0)
    total_errors = Column(Integer, nullable=False, default=0)

    created_by = Column(String(255), nullable=False, default="system")
    schema_version = Column(Integer, nullable=False, default=CURRENT_SCHEMA_VERSION)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    verified_at = Column(DateTime(timezone=True), nullable=True)
    downloaded_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return (
            f"<SatRequest(id={self.id}, subject={self.subject_id}, direction={self.direction}, "
            f"{self.date_from}..{self.date_to})>"
        )


class SatPackageModel(Base):
    """Paquete ZIP descargado (bytes crudos)."""

    __tablename__ = "sat_packages"
    __table_args__ = (
        UniqueConstraint("request_id", "package_id", name="uq_sat_packages_request_package"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(String(36), ForeignKey("sat_requests.id"), nullable=False, index=True)
    package_id = Column(String(255), nullable=False)
    content = Column(LargeBinary, nullable=False)
    size_bytes = Column(Integer, nullable=False, default=0)
    downloaded_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SatPackage(request={self.request_id}, package={self.package_id}, size={self.size_bytes})>"


class CfdiInvoiceModel(Base):
    """
    CFDI importado.
    La llave natural es (subject_id, uuid); `manually_modified` protege los
    montos gravados de recalculos.
    """

    __tablename__ = "cfdi_invoices"
    __table_args__ = (
        UniqueConstraint("subject_id", "uuid", name="uq_cfdi_invoices_subject_uuid"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(String(13), nullable=False, index=True)
    uuid = Column(String(36), nullable=False, index=True)
    direction = Column(String(20), nullable=False)
    version = Column(String(5), nullable=False, default="4.0")
    invoice_type = Column(String(2), nullable=False)
    issued_at = Column(DateTime(timezone=False), nullable=False)

    issuer_rfc = Column(String(13), nullable=False)
    issuer_name = Column(String(255), nullable=True)
    receiver_rfc = Column(String(13), nullable=False)
    receiver_name = Column(String(255), nullable=True)

    currency = Column(String(3), nullable=False, default="MXN")
    exchange_rate = Column(Numeric(18, 6), nullable=True)
    subtotal = Column(MONEY, nullable=False)
    discount = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False)
    transferred_iva = Column(MONEY, nullable=False, default=0)
    transferred_ieps = Column(MONEY, nullable=False, default=0)
    withheld_iva = Column(MONEY, nullable=False, default=0)
    withheld_isr = Column(MONEY, nullable=False, default=0)
    iva_base_16 = Column(MONEY, nullable=False, default=0)
    iva_base_8 = Column(MONEY, nullable=False, default=0)
    iva_base_0 = Column(MONEY, nullable=False, default=0)
    iva_exempt = Column(MONEY, nullable=False, default=0)

    payment_method = Column(String(3), nullable=True)
    payment_form = Column(String(3), nullable=True)
    cfdi_use = Column(String(4), nullable=True)

    taxable_isr = Column(MONEY, nullable=False, default=0)
    taxable_iva = Column(MONEY, nullable=False, default=0)
    manually_modified = Column(Boolean, nullable=False, default=False)

    request_id = Column(String(36), nullable=True, index=True)
    package_id = Column(String(255), nullable=True)
    xml = Column(Text, nullable=True)
    extra = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<CfdiInvoice(subject={self.subject_id}, uuid={self.uuid}, total={self.total})>"


class SatSyncWatermarkModel(Base):
    """Ultima fecha cubierta por (RFC, tipo de descarga)."""

    __tablename__ = "sat_sync_watermarks"

    subject_id = Column(String(13), primary_key=True)
    direction = Column(String(20), primary_key=True)
    last_synced_date = Column(Date, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SatSyncWatermark({self.subject_id}/{self.direction} -> {self.last_synced_date})>"


class SatAuditLogModel(Base):
    """Bitacora append-only de sincronizacion."""

    __tablename__ = "sat_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(String(13), nullable=False, index=True)
    job_id = Column(String(36), nullable=True, index=True)
    stage = Column(String(30), nullable=False)
    type = Column(String(50), nullable=False)
    level = Column(String(10), nullable=False)
    message = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)
    created_by = Column(String(255), nullable=False, default="system")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<SatAuditLog(id={self.id}, subject={self.subject_id}, type={self.type}, level={self.level})>"
