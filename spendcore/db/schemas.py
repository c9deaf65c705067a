"""SQL schemas for the persisted-state layout."""

# Categories - process-wide reference data
CATEGORIES_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL UNIQUE,
    color VARCHAR(7) NOT NULL DEFAULT '#6366F1',
    is_system BOOLEAN NOT NULL DEFAULT FALSE
);
"""

# Categorization rules - evaluated in (priority, id) order
RULES_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS categorization_rules (
    id INTEGER PRIMARY KEY,
    keyword VARCHAR(255) NOT NULL CHECK (length(trim(keyword)) > 0),
    category_id INTEGER NOT NULL REFERENCES categories(id),
    priority INTEGER NOT NULL DEFAULT 0,
    match_count INTEGER NOT NULL DEFAULT 0 CHECK (match_count >= 0),
    is_system BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_rules_order ON categorization_rules(priority, id);
"""

# Transactions - owned by an upload
TRANSACTIONS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id VARCHAR(64) PRIMARY KEY,
    upload_id VARCHAR(64) NOT NULL,
    txn_date DATE NOT NULL,
    description TEXT NOT NULL,
    amount DECIMAL(18, 2) NOT NULL,
    currency VARCHAR(3) NOT NULL DEFAULT 'THB',
    category_id INTEGER REFERENCES categories(id),
    matched_rule_id INTEGER,
    is_override BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_transactions_upload ON transactions(upload_id, txn_date);
"""

# Anomalies - one per (transaction, rule)
ANOMALIES_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS anomalies (
    id VARCHAR(36) PRIMARY KEY,
    transaction_id VARCHAR(64) NOT NULL REFERENCES transactions(id) ON DELETE CASCADE,
    upload_id VARCHAR(64),
    rule_name VARCHAR(40) NOT NULL CHECK (rule_name IN ('STATISTICAL_OUTLIER', 'DUPLICATE_SIGNAL', 'LARGE_AMOUNT')),
    severity VARCHAR(10) NOT NULL CHECK (severity IN ('LOW', 'MEDIUM', 'HIGH')),
    detail TEXT,
    evidence TEXT,  -- JSON stored as text
    status VARCHAR(12) NOT NULL DEFAULT 'open' CHECK (status IN ('open', 'confirmed', 'dismissed')),
    reviewed_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (transaction_id, rule_name)
);

CREATE INDEX IF NOT EXISTS idx_anomalies_upload ON anomalies(upload_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_anomalies_status ON anomalies(status);
"""

ALL_SCHEMAS = [
    CATEGORIES_TABLE_SCHEMA,
    RULES_TABLE_SCHEMA,
    TRANSACTIONS_TABLE_SCHEMA,
    ANOMALIES_TABLE_SCHEMA,
]


def create_all_tables(cursor):
    """
    Execute all CREATE TABLE statements.

    Each schema holds several statements, so they are split and run one at
    a time; this works with any DB-API cursor.

    Args:
        cursor: Database cursor object
    """
    for schema in ALL_SCHEMAS:
        for statement in schema.split(";"):
            if statement.strip():
                cursor.execute(statement)
