import logging
import os
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

import duckdb

from app.dal.analysis_repo import filter_results
from app.models import AnalysisResult, AnalysisStatus, ValidationResult

logger = logging.getLogger(__name__)


class DuckDBAnalysisRepository:
    """Persistent analysis store. Results are kept as JSON next to their queryable columns."""

    def __init__(self, db_path: str = "data/analyses.duckdb"):
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        """Initializes the database schema."""
        with self.get_connection() as con:
            con.execute("""
                CREATE TABLE IF NOT EXISTS images (
                    id VARCHAR PRIMARY KEY,
                    filename VARCHAR,
                    content BLOB,
                    status VARCHAR,
                    uploaded_at VARCHAR,
                    validation VARCHAR
                );
                CREATE TABLE IF NOT EXISTS analysis_results (
                    image_id VARCHAR PRIMARY KEY,
                    status VARCHAR,
                    confidence_score DOUBLE,
                    result VARCHAR
                );
            """)
        logger.info("Database schema initialized.")

    @contextmanager
    def get_connection(self):
        """Yields a DuckDB connection."""
        con = duckdb.connect(self.db_path)
        try:
            yield con
        finally:
            con.close()

    def create_image(self, image_id: str, filename: str, content: bytes, validation: Optional[ValidationResult] = None):
        with self.get_connection() as con:
            con.execute(
                "INSERT OR REPLACE INTO images VALUES (?, ?, ?, ?, ?, ?)",
                [
                    image_id,
                    filename,
                    content,
                    AnalysisStatus.PENDING.value,
                    datetime.now().isoformat(timespec="seconds"),
                    validation.model_dump_json() if validation else None,
                ],
            )

    def get_image(self, image_id: str) -> Optional[dict]:
        with self.get_connection() as con:
            row = con.execute(
                "SELECT id, filename, content, status, uploaded_at, validation FROM images WHERE id = ?",
                [image_id],
            ).fetchone()
        if not row:
            return None
        return {
            "id": row[0],
            "filename": row[1],
            "content": bytes(row[2]) if row[2] is not None else b"",
            "status": AnalysisStatus(row[3]),
            "uploaded_at": row[4],
            "validation": ValidationResult.model_validate_json(row[5]) if row[5] else None,
        }

    def update_status(self, image_id: str, status: AnalysisStatus):
        try:
            with self.get_connection() as con:
                con.execute("UPDATE images SET status = ? WHERE id = ?", [status.value, image_id])
        except Exception as e:
            logger.error(f"Failed to update image status: {e}")

    def save_result(self, image_id: str, result: AnalysisResult):
        with self.get_connection() as con:
            con.execute(
                "INSERT OR REPLACE INTO analysis_results VALUES (?, ?, ?, ?)",
                [image_id, result.status.value, result.confidence_score, result.model_dump_json()],
            )

    def get_result(self, image_id: str) -> Optional[AnalysisResult]:
        with self.get_connection() as con:
            row = con.execute("SELECT result FROM analysis_results WHERE image_id = ?", [image_id]).fetchone()
        return AnalysisResult.model_validate_json(row[0]) if row else None

    def list_results(self, status=None, min_confidence=None, max_confidence=None) -> List[AnalysisResult]:
        with self.get_connection() as con:
            rows = con.execute("SELECT result FROM analysis_results").fetchall()
        results = [AnalysisResult.model_validate_json(r[0]) for r in rows]
        return filter_results(results, status, min_confidence, max_confidence)

    def delete_image(self, image_id: str):
        with self.get_connection() as con:
            con.execute("DELETE FROM analysis_results WHERE image_id = ?", [image_id])
            con.execute("DELETE FROM images WHERE id = ?", [image_id])
