"""SQLAlchemy Core table definitions for the lexicon images.

Column names are camelCase so that images produced here stay interchangeable
with images written by the browser digitizer and the disk server. The
``Entry`` domain model maps to them through its camelCase aliases.

The entry schema only ever grows. Columns introduced after the original
table are listed in ``COLUMN_MIGRATIONS`` and are re-applied, idempotently,
to every image on every load.
"""

from dataclasses import dataclass

from sqlalchemy import Boolean, Column, Index, Integer, MetaData, Table, Text, text

entries_metadata = MetaData()

entries_table = Table(
    "entries",
    entries_metadata,
    Column("id", Text, primary_key=True),
    Column("hebrewWord", Text),
    Column("hebrewConsonantal", Text),
    Column("transliteration", Text),
    Column("partOfSpeech", Text),
    Column("definition", Text),
    Column("root", Text),
    Column("isRoot", Boolean, nullable=False, server_default=text("0")),
    Column("strongsNumbers", Text, server_default=""),
    Column("sourcePage", Text),
    Column("sourceUrl", Text),
    Column("dateAdded", Integer),
    Column("status", Text, nullable=False, server_default="unchecked"),
    Column("validationIssue", Text),
    Index("idx_hebrew", "hebrewWord"),
    Index("idx_consonantal", "hebrewConsonantal"),
)

# Read-only cross reference shipped as a separate image; never created here
# outside of test fixtures.
reference_metadata = MetaData()

strongs_table = Table(
    "strongs",
    reference_metadata,
    Column("lemma", Text),
    Column("number", Text),
)


@dataclass(frozen=True)
class ColumnMigration:
    """An additive column: name plus the DDL fragment used by ALTER TABLE."""

    version: int
    name: str
    definition: str


COLUMN_MIGRATIONS: tuple[ColumnMigration, ...] = (
    ColumnMigration(1, "isRoot", "INTEGER NOT NULL DEFAULT 0"),
    ColumnMigration(2, "strongsNumbers", "TEXT DEFAULT ''"),
    ColumnMigration(3, "status", "TEXT NOT NULL DEFAULT 'unchecked'"),
    ColumnMigration(4, "validationIssue", "TEXT"),
)
