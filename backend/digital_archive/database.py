import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from digital_archive.config import settings


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


SCHEMA_SQL = """\
-- ============================================================
-- PLANS
-- ============================================================
CREATE TABLE IF NOT EXISTS plans (
    id                     TEXT PRIMARY KEY,
    name                   TEXT NOT NULL UNIQUE,
    description            TEXT,
    can_share_document     INTEGER NOT NULL DEFAULT 0,
    can_view_activity_logs INTEGER NOT NULL DEFAULT 0,
    can_view_chat          INTEGER NOT NULL DEFAULT 0,
    can_view_reports       INTEGER NOT NULL DEFAULT 0,
    allow_multiple_uploads INTEGER NOT NULL DEFAULT 0,
    can_add_client         INTEGER NOT NULL DEFAULT 0,
    number_of_clients      INTEGER NOT NULL DEFAULT 0,
    total_users            INTEGER NOT NULL DEFAULT 0,
    storage_limit_gb       INTEGER NOT NULL DEFAULT 0,
    docs_upload_limit      INTEGER NOT NULL DEFAULT 0,
    monthly_bill_cents     INTEGER,
    price_description      TEXT,
    billing_duration       INTEGER NOT NULL DEFAULT 1,
    upload_price_cents     INTEGER NOT NULL DEFAULT 0,
    upload_unit_count      INTEGER NOT NULL DEFAULT 0,
    download_price_cents   INTEGER NOT NULL DEFAULT 0,
    download_unit_count    INTEGER NOT NULL DEFAULT 0,
    share_price_cents      INTEGER NOT NULL DEFAULT 0,
    share_unit_count       INTEGER NOT NULL DEFAULT 0,
    created_at             TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ============================================================
-- COMPANIES
-- ============================================================
CREATE TABLE IF NOT EXISTS companies (
    id                        TEXT PRIMARY KEY,
    name                      TEXT NOT NULL,
    contact_email             TEXT NOT NULL,
    admin_name                TEXT,
    plan_id                   TEXT REFERENCES plans(id) ON DELETE RESTRICT,
    status                    TEXT NOT NULL DEFAULT 'pending'
                              CHECK(status IN ('active','pending','cancelled','failed')),
    documents_uploaded        INTEGER NOT NULL DEFAULT 0,
    documents_downloaded      INTEGER NOT NULL DEFAULT 0,
    documents_shared          INTEGER NOT NULL DEFAULT 0,
    total_documents_uploaded  INTEGER NOT NULL DEFAULT 0,
    documents_indexed         INTEGER NOT NULL DEFAULT 0,
    documents_qa_passed       INTEGER NOT NULL DEFAULT 0,
    total_documents_published INTEGER NOT NULL DEFAULT 0,
    storage_assigned          INTEGER NOT NULL DEFAULT 0,
    created_at                TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_companies_plan ON companies(plan_id);

-- ============================================================
-- CLIENT PLANS
-- ============================================================
CREATE TABLE IF NOT EXISTS client_plans (
    id                     TEXT PRIMARY KEY,
    company_id             TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    name                   TEXT NOT NULL,
    can_share_document     INTEGER NOT NULL DEFAULT 0,
    can_view_activity_logs INTEGER NOT NULL DEFAULT 0,
    can_view_chat          INTEGER NOT NULL DEFAULT 0,
    can_view_reports       INTEGER NOT NULL DEFAULT 0,
    allow_multiple_uploads INTEGER NOT NULL DEFAULT 0,
    storage_limit_gb       INTEGER NOT NULL DEFAULT 0,
    docs_upload_limit      INTEGER NOT NULL DEFAULT 0,
    monthly_bill_cents     INTEGER,
    price_description      TEXT,
    billing_duration       INTEGER NOT NULL DEFAULT 1,
    upload_price_cents     INTEGER NOT NULL DEFAULT 0,
    upload_unit_count      INTEGER NOT NULL DEFAULT 0,
    download_price_cents   INTEGER NOT NULL DEFAULT 0,
    download_unit_count    INTEGER NOT NULL DEFAULT 0,
    share_price_cents      INTEGER NOT NULL DEFAULT 0,
    share_unit_count       INTEGER NOT NULL DEFAULT 0,
    created_at             TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    UNIQUE (company_id, name)
);

-- ============================================================
-- CLIENTS
-- ============================================================
CREATE TABLE IF NOT EXISTS clients (
    id                        TEXT PRIMARY KEY,
    company_id                TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    name                      TEXT NOT NULL,
    contact_email             TEXT NOT NULL,
    plan_id                   TEXT REFERENCES client_plans(id) ON DELETE RESTRICT,
    status                    TEXT NOT NULL DEFAULT 'pending'
                              CHECK(status IN ('active','pending','cancelled','failed')),
    documents_uploaded        INTEGER NOT NULL DEFAULT 0,
    documents_downloaded      INTEGER NOT NULL DEFAULT 0,
    documents_shared          INTEGER NOT NULL DEFAULT 0,
    total_documents_uploaded  INTEGER NOT NULL DEFAULT 0,
    documents_indexed         INTEGER NOT NULL DEFAULT 0,
    documents_qa_passed       INTEGER NOT NULL DEFAULT 0,
    total_documents_published INTEGER NOT NULL DEFAULT 0,
    storage_assigned          INTEGER NOT NULL DEFAULT 0,
    created_at                TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_clients_company ON clients(company_id);
CREATE INDEX IF NOT EXISTS idx_clients_plan ON clients(plan_id);

-- ============================================================
-- USERS
-- ============================================================
CREATE TABLE IF NOT EXISTS users (
    id                 TEXT PRIMARY KEY,
    name               TEXT NOT NULL,
    email              TEXT NOT NULL UNIQUE,
    phone              TEXT,
    role               TEXT NOT NULL
                       CHECK(role IN ('admin','owner','manager','scanner','indexer','qa','client')),
    password_hash      TEXT NOT NULL,
    company_id         TEXT REFERENCES companies(id) ON DELETE CASCADE,
    client_id          TEXT REFERENCES clients(id) ON DELETE CASCADE,
    status             TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active','blocked')),
    allow_to_publish   INTEGER NOT NULL DEFAULT 0,
    create_dispute     INTEGER NOT NULL DEFAULT 0,
    documents_reviewed INTEGER NOT NULL DEFAULT 0,
    created_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_users_company ON users(company_id);

-- ============================================================
-- DOCUMENT TAGS
-- ============================================================
CREATE TABLE IF NOT EXISTS document_tags (
    id         TEXT PRIMARY KEY,
    company_id TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    name       TEXT NOT NULL,
    properties TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    UNIQUE (company_id, name)
);

-- ============================================================
-- DOCUMENTS
-- ============================================================
CREATE TABLE IF NOT EXISTS documents (
    id                TEXT PRIMARY KEY,
    company_id        TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    client_id         TEXT REFERENCES clients(id) ON DELETE SET NULL,
    tag_id            TEXT REFERENCES document_tags(id) ON DELETE SET NULL,
    tag_name          TEXT,
    title             TEXT NOT NULL,
    original_filename TEXT NOT NULL,
    stored_path       TEXT NOT NULL,
    file_hash         TEXT NOT NULL,
    file_size_bytes   INTEGER NOT NULL,
    mime_type         TEXT,
    properties        TEXT NOT NULL DEFAULT '[]',
    added_by_user_id  TEXT,
    added_by_role     TEXT,
    passed_to         TEXT,
    indexer_passed_id TEXT,
    qa_passed_id      TEXT,
    progress_number   INTEGER NOT NULL DEFAULT 1,
    is_published      INTEGER NOT NULL DEFAULT 0,
    created_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_documents_company ON documents(company_id);
CREATE INDEX IF NOT EXISTS idx_documents_client ON documents(client_id);
CREATE INDEX IF NOT EXISTS idx_documents_hash ON documents(file_hash);
CREATE UNIQUE INDEX IF NOT EXISTS idx_documents_path ON documents(stored_path);

CREATE TABLE IF NOT EXISTS document_history (
    id          TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    user_name   TEXT NOT NULL,
    action      TEXT NOT NULL,
    details     TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_history_document ON document_history(document_id);

CREATE TABLE IF NOT EXISTS document_comments (
    id          TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    user_id     TEXT REFERENCES users(id) ON DELETE SET NULL,
    user_name   TEXT NOT NULL,
    user_role   TEXT NOT NULL,
    comment     TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_comments_document ON document_comments(document_id);

CREATE TABLE IF NOT EXISTS document_shares (
    id                 TEXT PRIMARY KEY,
    document_id        TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    password_hash      TEXT NOT NULL,
    created_by_user_id TEXT,
    created_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ============================================================
-- DISPUTES
-- ============================================================
CREATE TABLE IF NOT EXISTS disputes (
    id                 TEXT PRIMARY KEY,
    document_id        TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    company_id         TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    description        TEXT NOT NULL,
    resolve            INTEGER NOT NULL DEFAULT 0,
    created_by_user_id TEXT,
    created_by_name    TEXT NOT NULL,
    resolved_by_name   TEXT,
    resolved_at        TEXT,
    created_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_disputes_company ON disputes(company_id);

-- ============================================================
-- INVOICES
-- ============================================================
CREATE TABLE IF NOT EXISTS invoices (
    id                      TEXT PRIMARY KEY,
    company_id              TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    client_id               TEXT REFERENCES clients(id) ON DELETE RESTRICT,
    is_client               INTEGER NOT NULL DEFAULT 0,
    invoice_type            TEXT NOT NULL DEFAULT 'monthly'
                            CHECK(invoice_type IN ('monthly','custom')),
    invoice_month           TEXT NOT NULL,
    documents_uploaded      INTEGER NOT NULL DEFAULT 0,
    documents_downloaded    INTEGER NOT NULL DEFAULT 0,
    documents_shared        INTEGER NOT NULL DEFAULT 0,
    monthly_cents           INTEGER NOT NULL DEFAULT 0,
    upload_amount_cents     INTEGER NOT NULL DEFAULT 0,
    download_amount_cents   INTEGER NOT NULL DEFAULT 0,
    share_amount_cents      INTEGER NOT NULL DEFAULT 0,
    discount_percent        TEXT NOT NULL DEFAULT '0',
    tax_percent             TEXT NOT NULL DEFAULT '0',
    subtotal_cents          INTEGER NOT NULL DEFAULT 0,
    total_cents             INTEGER NOT NULL DEFAULT 0,
    notes                   TEXT,
    due_date                TEXT,
    invoice_submitted       INTEGER NOT NULL DEFAULT 0,
    invoice_submitted_admin INTEGER NOT NULL DEFAULT 0,
    submitted_at            TEXT,
    verified_at             TEXT,
    created_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_invoices_company ON invoices(company_id);
CREATE INDEX IF NOT EXISTS idx_invoices_client ON invoices(client_id);
CREATE INDEX IF NOT EXISTS idx_invoices_month ON invoices(invoice_month);

CREATE TABLE IF NOT EXISTS invoice_items (
    id           TEXT PRIMARY KEY,
    invoice_id   TEXT NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
    position     INTEGER NOT NULL DEFAULT 0,
    description  TEXT NOT NULL,
    quantity     TEXT NOT NULL,
    rate_cents   INTEGER NOT NULL,
    amount_cents INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice ON invoice_items(invoice_id);
"""


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    conn.close()
