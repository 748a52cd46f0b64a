"""Generate SQL CREATE TABLE statements from SQLAlchemy models.

This outputs plain PostgreSQL DDL you can paste into any SQL console.

Usage:
    python scripts/generate_sql.py > create_tables.sql
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.dialects import postgresql  # noqa: E402
from sqlalchemy.schema import CreateIndex, CreateTable  # noqa: E402

from app.core.schema import CORE_TABLES, metadata  # noqa: E402


def generate_sql() -> str:
    """CREATE TABLE / CREATE INDEX statements for all models, in dependency order."""
    dialect = postgresql.dialect()
    lines = [
        "-- ============================================",
        "-- Hotel Concierge table creation SQL",
        "-- ============================================\n",
        "-- Drop core tables (in reverse order for foreign keys)",
    ]
    lines += [f"DROP TABLE IF EXISTS {table} CASCADE;" for table in reversed(CORE_TABLES)]
    lines.append("")

    for table in metadata.sorted_tables:
        lines.append(f"-- Creating table: {table.name}")
        lines.append(str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip() + ";")
        for index in sorted(table.indexes, key=lambda i: i.name or ""):
            lines.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip() + ";")
        lines.append("")

    lines.append("SELECT table_name FROM information_schema.tables WHERE table_schema = 'public' ORDER BY table_name;")
    return "\n".join(lines)


if __name__ == "__main__":
    print(generate_sql())
