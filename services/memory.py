# services/memory.py
"""Persistent memory layer using SQLite for match and validation snapshots."""

import sqlite3
import json
import hashlib
from datetime import datetime
from typing import Dict, List, Any, Optional
from pathlib import Path
from dataclasses import dataclass

from config import MEMORY_DB_PATH


@dataclass
class MatchRecord:
    """Stored supplier-match snapshot."""
    id: str
    timestamp: str
    opportunity_id: str
    supplier_count: int
    top_supplier_id: str
    top_score: int
    input_data: Dict
    result_data: List[Dict]


class MemoryStore:
    """SQLite-based persistent memory for matching and RFQ validation."""

    def __init__(self, db_path: str = MEMORY_DB_PATH):
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS matches (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    opportunity_id TEXT NOT NULL,
                    supplier_count INTEGER NOT NULL,
                    top_supplier_id TEXT,
                    top_score INTEGER,
                    input_hash TEXT NOT NULL,
                    input_data TEXT NOT NULL,
                    result_data TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS assessments (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    title TEXT NOT NULL,
                    overall_score INTEGER NOT NULL,
                    readiness_level TEXT NOT NULL,
                    critical_issue_count INTEGER NOT NULL,
                    input_data TEXT NOT NULL,
                    result_data TEXT NOT NULL,
                    trace_data TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS errors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    error_type TEXT NOT NULL,
                    message TEXT NOT NULL,
                    stack_trace TEXT,
                    context TEXT,
                    trace_id TEXT,
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_match_hash ON matches(input_hash)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_match_opportunity ON matches(opportunity_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_assessment_timestamp ON assessments(timestamp)")

            conn.commit()

    def _generate_id(self, data: Any) -> str:
        content = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()[:16]

    def _hash_input(self, input_data: Any) -> str:
        """Create hash of input data for duplicate detection."""
        content = json.dumps(input_data, sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()

    # ==================== MATCHES ====================

    def save_match(self, input_data: Dict, matches: List[Dict]) -> str:
        """
        Save a ranked match list.

        ``input_data`` holds the opportunity dict, supplier dicts and limit;
        ``matches`` is the ranked list as dicts, best first.
        """
        timestamp = datetime.now().isoformat()
        match_id = self._generate_id({"input": input_data, "timestamp": timestamp})
        top = matches[0] if matches else {}

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO matches
                (id, timestamp, opportunity_id, supplier_count, top_supplier_id,
                 top_score, input_hash, input_data, result_data)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                match_id,
                timestamp,
                input_data.get("opportunity", {}).get("id", ""),
                len(input_data.get("suppliers", [])),
                top.get("supplier_id"),
                top.get("match_score"),
                self._hash_input(input_data),
                json.dumps(input_data, default=str),
                json.dumps(matches)
            ))
            conn.commit()

        return match_id

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("""
                SELECT id, timestamp, opportunity_id, supplier_count, top_supplier_id,
                       top_score, input_data, result_data
                FROM matches WHERE id = ?
            """, (match_id,)).fetchone()

        if not row:
            return None
        return MatchRecord(
            id=row[0],
            timestamp=row[1],
            opportunity_id=row[2],
            supplier_count=row[3],
            top_supplier_id=row[4],
            top_score=row[5],
            input_data=json.loads(row[6]),
            result_data=json.loads(row[7])
        )

    def find_previous_match(self, input_data: Dict) -> Optional[Dict]:
        """Find the latest snapshot for identical input."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("""
                SELECT id, timestamp, result_data
                FROM matches
                WHERE input_hash = ?
                ORDER BY timestamp DESC
                LIMIT 1
            """, (self._hash_input(input_data),)).fetchone()

        if row:
            return {"id": row[0], "timestamp": row[1], "result": json.loads(row[2])}
        return None

    def get_recent_matches(self, opportunity_id: str = None, limit: int = 10) -> List[Dict]:
        query = """
            SELECT id, timestamp, opportunity_id, supplier_count, top_supplier_id, top_score
            FROM matches
        """
        params: List[Any] = []
        if opportunity_id:
            query += " WHERE opportunity_id = ?"
            params.append(opportunity_id)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            {
                "id": row[0],
                "timestamp": row[1],
                "opportunity_id": row[2],
                "supplier_count": row[3],
                "top_supplier_id": row[4],
                "top_score": row[5]
            }
            for row in rows
        ]

    # ==================== ASSESSMENTS ====================

    def save_assessment(self, quote_request: Dict, result: Dict, traces: List[Dict] = None) -> str:
        """Save a comprehensive validation result (``ComprehensiveValidation.to_dict()``)."""
        timestamp = datetime.now().isoformat()
        assessment_id = self._generate_id({"input": quote_request, "timestamp": timestamp})
        overall = result.get("overall", {})

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO assessments
                (id, timestamp, title, overall_score, readiness_level,
                 critical_issue_count, input_data, result_data, trace_data)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                assessment_id,
                timestamp,
                quote_request.get("title", ""),
                overall.get("overall_score", 0),
                overall.get("readiness_level", ""),
                overall.get("critical_issue_count", 0),
                json.dumps(quote_request, default=str),
                json.dumps(result),
                json.dumps(traces, default=str) if traces else None
            ))
            conn.commit()

        return assessment_id

    def get_assessment(self, assessment_id: str) -> Optional[Dict]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("""
                SELECT id, timestamp, input_data, result_data, trace_data
                FROM assessments WHERE id = ?
            """, (assessment_id,)).fetchone()

        if not row:
            return None
        return {
            "id": row[0],
            "timestamp": row[1],
            "quote_request": json.loads(row[2]),
            "result": json.loads(row[3]),
            "traces": json.loads(row[4]) if row[4] else []
        }

    def get_recent_assessments(self, limit: int = 10) -> List[Dict]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute("""
                SELECT id, timestamp, title, overall_score, readiness_level, critical_issue_count
                FROM assessments
                ORDER BY timestamp DESC
                LIMIT ?
            """, (limit,)).fetchall()

        return [
            {
                "id": row[0],
                "timestamp": row[1],
                "title": row[2],
                "overall_score": row[3],
                "readiness_level": row[4],
                "critical_issue_count": row[5]
            }
            for row in rows
        ]

    # ==================== ERRORS ====================

    def save_error(
        self,
        error_type: str,
        message: str,
        stack_trace: str = None,
        context: Dict = None,
        trace_id: str = None
    ):
        """Save error to database."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO errors
                (error_type, message, stack_trace, context, trace_id, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                error_type,
                message,
                stack_trace,
                json.dumps(context, default=str) if context else None,
                trace_id,
                datetime.now().isoformat()
            ))
            conn.commit()

    def get_recent_errors(self, limit: int = 20) -> List[Dict]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute("""
                SELECT error_type, message, stack_trace, context, trace_id, timestamp
                FROM errors
                ORDER BY id DESC
                LIMIT ?
            """, (limit,)).fetchall()

        return [
            {
                "error_type": row[0],
                "message": row[1],
                "stack_trace": row[2],
                "context": json.loads(row[3]) if row[3] else {},
                "trace_id": row[4],
                "timestamp": row[5]
            }
            for row in rows
        ]


# Singleton instance
_memory_store: Optional[MemoryStore] = None


def get_memory_store(db_path: str = MEMORY_DB_PATH) -> MemoryStore:
    """Get or create memory store singleton."""
    global _memory_store
    if _memory_store is None:
        _memory_store = MemoryStore(db_path)
    return _memory_store
