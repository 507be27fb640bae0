"""SQLAlchemy models for siteledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Payee(Base):
    """Worker or vendor model."""

    __tablename__ = "payees"

    id = Column(Integer, primary_key=True)
    display_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    expenses = relationship("Expense", back_populates="payee")


class Client(Base):
    """Client model."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    display_name = Column(String, nullable=False)
    company_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    revenues = relationship("Revenue", back_populates="client")


class Project(Base):
    """Project / work order model."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    number = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class EntityAlias(Base):
    """Alias table for payees, clients and projects."""

    __tablename__ = "entity_aliases"

    id = Column(Integer, primary_key=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(Integer, nullable=False)
    alias = Column(String, nullable=False)
    match_type = Column(String, nullable=False, default="exact")
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "alias", "match_type", name="uq_entity_alias"),
    )


class CategoryMapping(Base):
    """Account path to category mapping model."""

    __tablename__ = "category_mappings"

    id = Column(Integer, primary_key=True)
    account_path = Column(String, unique=True, nullable=False)
    category = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class ImportBatch(Base):
    """Import batch model."""

    __tablename__ = "import_batches"

    id = Column(String(36), primary_key=True)
    file_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    imported_count = Column(Integer, default=0, nullable=False)
    duplicate_count = Column(Integer, default=0, nullable=False)
    error_count = Column(Integer, default=0, nullable=False)
    status = Column(String, default="completed", nullable=False)
    match_log = Column(Text, nullable=True)

    # Relationships
    expenses = relationship("Expense", back_populates="batch")
    revenues = relationship("Revenue", back_populates="batch")


class Expense(Base):
    """Committed expense-track row."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    batch_id = Column(String(36), ForeignKey("import_batches.id"), nullable=True, index=True)
    payee_id = Column(Integer, ForeignKey("payees.id"), nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    description = Column(String, nullable=True)
    source_name = Column(String, nullable=True)
    account_path = Column(String, nullable=True)
    account_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    batch = relationship("ImportBatch", back_populates="expenses")
    payee = relationship("Payee", back_populates="expenses")


class Revenue(Base):
    """Committed revenue-track (invoice) row."""

    __tablename__ = "revenues"

    id = Column(Integer, primary_key=True)
    batch_id = Column(String(36), ForeignKey("import_batches.id"), nullable=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=False)
    kind = Column(String, nullable=False, default="invoice")
    invoice_number = Column(String, nullable=True)
    description = Column(String, nullable=True)
    source_name = Column(String, nullable=True)
    account_path = Column(String, nullable=True)
    account_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    batch = relationship("ImportBatch", back_populates="revenues")
    client = relationship("Client", back_populates="revenues")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
