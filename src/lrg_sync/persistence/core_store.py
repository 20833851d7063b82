"""DuckDB-backed access to the core annotation database."""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import duckdb
import polars as pl
import structlog

from lrg_sync.persistence.schema import CORE_SCHEMA

logger = structlog.get_logger()

ASSEMBLY_META_KEY = "assembly.default"


class CoreStore:
    """
    Connection to the core database plus the small set of CRUD helpers the
    synchronization engine needs.

    One CoreStore is opened per run and passed explicitly to every
    operation. The schema is created on first connect if it is missing.
    """

    def __init__(self, db_path: Path):
        """
        Initialize CoreStore with a DuckDB database.

        Args:
            db_path: Path to DuckDB database file. Parent directories
                     are created automatically.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(str(self.db_path))
        self._in_transaction = False

        for statement in CORE_SCHEMA.split(";"):
            if statement.strip():
                self.conn.execute(statement)

    # ------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------

    def execute_query(
        self,
        query: str,
        params: Optional[list] = None
    ) -> pl.DataFrame:
        """
        Execute arbitrary SQL query and return polars DataFrame.

        Args:
            query: SQL query to execute
            params: Optional query parameters

        Returns:
            Query results as polars DataFrame
        """
        if params:
            result = self.conn.execute(query, params)
        else:
            result = self.conn.execute(query)
        return result.pl()

    def fetch_value(self, query: str, params: Optional[list] = None) -> Any:
        """First column of the first row, or None when there are no rows."""
        row = self.conn.execute(query, params or []).fetchone()
        return row[0] if row else None

    def fetch_all(self, query: str, params: Optional[list] = None) -> list[tuple]:
        return self.conn.execute(query, params or []).fetchall()

    def insert(self, table: str, values: dict[str, Any], returning: Optional[str] = None) -> Any:
        """
        Insert one row.

        Args:
            table: Table name
            values: Column -> value mapping
            returning: Column to return (usually the generated primary key)

        Returns:
            Value of ``returning`` for the new row, or None
        """
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        query = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
        if returning:
            query += f" RETURNING {returning}"
            return self.fetch_value(query, list(values.values()))
        self.conn.execute(query, list(values.values()))
        return None

    def delete(self, table: str, where: str, params: Optional[list] = None) -> int:
        """
        Delete rows matching ``where``.

        Returns:
            Number of rows deleted
        """
        deleted = self.fetch_value(f"DELETE FROM {table} WHERE {where}", params)
        return int(deleted or 0)

    def table_columns(self) -> dict[str, set[str]]:
        """Map of table name -> column names for the main schema."""
        rows = self.fetch_all(
            """
            SELECT table_name, column_name
            FROM information_schema.columns
            WHERE table_schema = 'main'
            """
        )
        columns: dict[str, set[str]] = {}
        for table, column in rows:
            columns.setdefault(table, set()).add(column)
        return columns

    @contextmanager
    def transaction(self) -> Iterator["CoreStore"]:
        """
        Run a block of writes atomically.

        Commits when the block finishes, rolls back and re-raises when it
        raises. Nested use joins the outer transaction.
        """
        if self._in_transaction:
            yield self
            return

        self.conn.begin()
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self.conn.rollback()
            logger.warning("transaction_rolled_back", db_path=str(self.db_path))
            raise
        else:
            self.conn.commit()
        finally:
            self._in_transaction = False

    # ------------------------------------------------------------------
    # Coordinate systems and regions
    # ------------------------------------------------------------------

    def get_assembly(self) -> Optional[str]:
        """Name of the assembly the database is built on (meta assembly.default)."""
        return self.fetch_value(
            "SELECT meta_value FROM meta WHERE meta_key = ? ORDER BY meta_id LIMIT 1",
            [ASSEMBLY_META_KEY],
        )

    def set_meta(self, key: str, value: str) -> None:
        self.delete("meta", "meta_key = ?", [key])
        self.insert("meta", {"meta_key": key, "meta_value": value})

    def get_coord_system_id(self, name: str) -> Optional[int]:
        return self.fetch_value(
            "SELECT coord_system_id FROM coord_system WHERE name = ? ORDER BY rank, coord_system_id LIMIT 1",
            [name],
        )

    def add_coord_system(
        self,
        name: str,
        version: Optional[str] = None,
        rank: Optional[int] = None,
        attrib: Optional[str] = None,
    ) -> int:
        """Get or create a coordinate system by name."""
        cs_id = self.get_coord_system_id(name)
        if cs_id is not None:
            return cs_id
        if rank is None:
            rank = (self.fetch_value("SELECT MAX(rank) FROM coord_system") or 0) + 1
        cs_id = self.insert(
            "coord_system",
            {"name": name, "version": version, "rank": rank, "attrib": attrib},
            returning="coord_system_id",
        )
        logger.info("coord_system_added", name=name, coord_system_id=cs_id)
        return cs_id

    def get_seq_region_id(self, name: str, coord_system_id: Optional[int]) -> Optional[int]:
        if coord_system_id is None:
            return None
        return self.fetch_value(
            "SELECT seq_region_id FROM seq_region WHERE name = ? AND coord_system_id = ?",
            [name, coord_system_id],
        )

    def get_seq_region(self, seq_region_id: int) -> Optional[dict]:
        row = self.conn.execute(
            """
            SELECT sr.seq_region_id, sr.name, sr.length, cs.name
            FROM seq_region sr JOIN coord_system cs USING (coord_system_id)
            WHERE sr.seq_region_id = ?
            """,
            [seq_region_id],
        ).fetchone()
        if row is None:
            return None
        return {
            "seq_region_id": row[0],
            "name": row[1],
            "length": row[2],
            "coord_system": row[3],
        }

    def add_seq_region(
        self,
        name: str,
        coord_system_id: int,
        length: int,
        sequence: Optional[str] = None,
    ) -> int:
        """Create a seq_region, storing its bases in ``dna`` when given."""
        seq_region_id = self.insert(
            "seq_region",
            {"name": name, "coord_system_id": coord_system_id, "length": length},
            returning="seq_region_id",
        )
        if sequence is not None:
            self.insert("dna", {"seq_region_id": seq_region_id, "sequence": sequence})
        return seq_region_id

    # ------------------------------------------------------------------
    # Analyses and attribute types
    # ------------------------------------------------------------------

    def add_analysis(self, logic_name: str) -> int:
        """Get or create an analysis by logic name."""
        analysis_id = self.fetch_value(
            "SELECT analysis_id FROM analysis WHERE logic_name = ?", [logic_name]
        )
        if analysis_id is None:
            analysis_id = self.insert(
                "analysis", {"logic_name": logic_name}, returning="analysis_id"
            )
            logger.info("analysis_added", logic_name=logic_name, analysis_id=analysis_id)
        return analysis_id

    def add_analysis_description(
        self,
        analysis_id: int,
        description: str,
        display_label: str,
        displayable: bool = True,
        web_data: Optional[str] = None,
    ) -> None:
        """Attach a description to an analysis unless it already has one."""
        exists = self.fetch_value(
            "SELECT COUNT(*) FROM analysis_description WHERE analysis_id = ?", [analysis_id]
        )
        if exists:
            return
        self.insert("analysis_description", {
            "analysis_id": analysis_id,
            "description": description,
            "display_label": display_label,
            "displayable": displayable,
            "web_data": web_data,
        })

    def add_attrib_type(self, code: str, name: str = "", description: str = "") -> int:
        """Get or create an attribute type by code."""
        attrib_type_id = self.fetch_value(
            "SELECT attrib_type_id FROM attrib_type WHERE code = ?", [code]
        )
        if attrib_type_id is None:
            attrib_type_id = self.insert(
                "attrib_type",
                {"code": code, "name": name, "description": description},
                returning="attrib_type_id",
            )
        return attrib_type_id

    def get_object_id_by_stable_id(self, table: str, stable_id: str) -> Optional[int]:
        """Internal id of a gene/transcript/translation/exon by stable id."""
        key = f"{table}_id"
        return self.fetch_value(
            f"SELECT {key} FROM {table} WHERE stable_id = ? ORDER BY {key} LIMIT 1",
            [stable_id],
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes connection."""
        self.close()
        return False

    @classmethod
    def from_config(cls, config: "SyncConfig") -> "CoreStore":
        """
        Create CoreStore from a SyncConfig.

        Args:
            config: SyncConfig instance

        Returns:
            CoreStore instance
        """
        return cls(config.database.path)
