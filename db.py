import sqlite3
import datetime
import logging
from contextlib import contextmanager
from typing import Iterable, List, Optional, Tuple

from config import DEFAULT_DB_PATH, DEFAULT_SETTINGS_PATH, YamlConfig
from models import (
    Movement,
    MovementVariant,
    PerformedSet,
    ResistanceType,
    SessionMovement,
    SessionStatus,
    TemplateItem,
    WorkoutSession,
    WorkoutTemplate,
)
from settings_schema import SettingsSchema, validate_settings

logger = logging.getLogger(__name__)


def _parse_timestamp(ts: Optional[str]) -> Optional[datetime.datetime]:
    """Return ``ts`` as timezone-aware datetime, assuming UTC when naive."""
    if ts is None:
        return None
    dt = datetime.datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def _format_timestamp(dt: Optional[datetime.datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc).isoformat()


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "movements": (
            """CREATE TABLE movements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    category TEXT NOT NULL DEFAULT '',
                    notes TEXT,
                    default_set_count INTEGER NOT NULL DEFAULT 3
                );""",
            ["id", "name", "category", "notes", "default_set_count"],
        ),
        "movement_variants": (
            """CREATE TABLE movement_variants (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    movement_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    resistance_type TEXT NOT NULL DEFAULT 'total',
                    unit TEXT,
                    increment REAL,
                    notes TEXT,
                    FOREIGN KEY(movement_id) REFERENCES movements(id) ON DELETE CASCADE
                );""",
            ["id", "movement_id", "name", "resistance_type", "unit", "increment", "notes"],
        ),
        "workout_templates": (
            """CREATE TABLE workout_templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    notes TEXT,
                    created_at TEXT NOT NULL
                );""",
            ["id", "name", "notes", "created_at"],
        ),
        "template_items": (
            """CREATE TABLE template_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    template_id INTEGER NOT NULL,
                    movement_id INTEGER,
                    variant_id INTEGER,
                    quantity INTEGER NOT NULL DEFAULT 1,
                    target_sets INTEGER,
                    position INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY(template_id) REFERENCES workout_templates(id) ON DELETE CASCADE,
                    FOREIGN KEY(movement_id) REFERENCES movements(id) ON DELETE SET NULL,
                    FOREIGN KEY(variant_id) REFERENCES movement_variants(id) ON DELETE SET NULL
                );""",
            [
                "id",
                "template_id",
                "movement_id",
                "variant_id",
                "quantity",
                "target_sets",
                "position",
            ],
        ),
        "workout_sessions": (
            """CREATE TABLE workout_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    template_id INTEGER,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    duration_seconds INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'in_progress',
                    FOREIGN KEY(template_id) REFERENCES workout_templates(id) ON DELETE SET NULL
                );""",
            ["id", "template_id", "start_time", "end_time", "duration_seconds", "status"],
        ),
        "session_movements": (
            """CREATE TABLE session_movements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id INTEGER NOT NULL,
                    movement_id INTEGER,
                    variant_id INTEGER,
                    position INTEGER NOT NULL DEFAULT 0,
                    target_set_count INTEGER NOT NULL DEFAULT 3,
                    notes TEXT,
                    FOREIGN KEY(session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE,
                    FOREIGN KEY(movement_id) REFERENCES movements(id) ON DELETE SET NULL,
                    FOREIGN KEY(variant_id) REFERENCES movement_variants(id) ON DELETE SET NULL
                );""",
            [
                "id",
                "session_id",
                "movement_id",
                "variant_id",
                "position",
                "target_set_count",
                "notes",
            ],
        ),
        "performed_sets": (
            """CREATE TABLE performed_sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_movement_id INTEGER NOT NULL,
                    set_index INTEGER NOT NULL,
                    reps INTEGER NOT NULL DEFAULT 0,
                    weight REAL NOT NULL DEFAULT 0,
                    warmup INTEGER NOT NULL DEFAULT 0,
                    is_pr INTEGER NOT NULL DEFAULT 0,
                    completed INTEGER NOT NULL DEFAULT 0,
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY(session_movement_id) REFERENCES session_movements(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "session_movement_id",
                "set_index",
                "reps",
                "weight",
                "warmup",
                "is_pr",
                "completed",
                "timestamp",
            ],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            cursor.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA legacy_alter_table=off;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        logger.info("migrating table %s", table)
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("timestamp", "start_time", "created_at"):
                        return "'" + datetime.datetime.now(datetime.timezone.utc).isoformat() + "'"
                    if col == "status":
                        return "'completed'"
                    if col == "resistance_type":
                        return "'total'"
                    if col == "category":
                        return "''"
                    if col in ("default_set_count", "target_set_count"):
                        return "3"
                    if col == "quantity":
                        return "1"
                    if col in (
                        "position",
                        "duration_seconds",
                        "reps",
                        "weight",
                        "warmup",
                        "is_pr",
                        "completed",
                    ):
                        return "0"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            key: str(value) for key, value in SettingsSchema().model_dump().items()
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class MovementRepository(BaseRepository):
    """Repository for movements and their variants."""

    def add(
        self,
        name: str,
        category: str = "",
        default_set_count: int = 3,
        notes: str | None = None,
    ) -> int:
        name = name.strip()
        if not name:
            raise ValueError("name must not be empty")
        rows = super().fetch_all(
            "SELECT id FROM movements WHERE lower(name) = lower(?);", (name,)
        )
        if rows:
            raise ValueError("movement already exists")
        return self.execute(
            "INSERT INTO movements (name, category, notes, default_set_count) VALUES (?, ?, ?, ?);",
            (name, category, notes, max(int(default_set_count), 1)),
        )

    def update(
        self,
        movement_id: int,
        category: str | None = None,
        default_set_count: int | None = None,
        notes: str | None = None,
    ) -> None:
        self.fetch(movement_id)
        if category is not None:
            self.execute(
                "UPDATE movements SET category = ? WHERE id = ?;",
                (category, movement_id),
            )
        if default_set_count is not None:
            self.execute(
                "UPDATE movements SET default_set_count = ? WHERE id = ?;",
                (max(int(default_set_count), 1), movement_id),
            )
        if notes is not None:
            self.execute(
                "UPDATE movements SET notes = ? WHERE id = ?;",
                (notes, movement_id),
            )

    def delete(self, movement_id: int) -> None:
        self.fetch(movement_id)
        self.execute("DELETE FROM movements WHERE id = ?;", (movement_id,))

    def fetch_all_movements(self) -> List[Movement]:
        movements = super().fetch_all(
            "SELECT id, name, category, notes, default_set_count FROM movements ORDER BY name COLLATE NOCASE;"
        )
        variants = super().fetch_all(
            "SELECT id, movement_id, name, resistance_type, unit, increment, notes "
            "FROM movement_variants ORDER BY id;"
        )
        by_movement: dict[int, list[MovementVariant]] = {}
        for vid, mid, name, rtype, unit, inc, notes in variants:
            by_movement.setdefault(mid, []).append(
                MovementVariant(
                    id=vid,
                    movement_id=mid,
                    name=name,
                    resistance_type=ResistanceType(rtype),
                    unit=unit,
                    increment=inc,
                    notes=notes,
                )
            )
        return [
            Movement(
                id=mid,
                name=name,
                category=category,
                notes=notes,
                default_set_count=int(count),
                variants=by_movement.get(mid, []),
            )
            for mid, name, category, notes, count in movements
        ]

    def index(self) -> dict[int, Movement]:
        """Return all movements keyed by id."""
        return {m.id: m for m in self.fetch_all_movements()}

    def fetch(self, movement_id: int) -> Movement:
        movement = self.index().get(movement_id)
        if movement is None:
            raise ValueError("movement not found")
        return movement

    def find_by_name(self, name: str) -> Optional[Movement]:
        wanted = name.strip().lower()
        for movement in self.fetch_all_movements():
            if movement.name.lower() == wanted:
                return movement
        return None


class VariantRepository(BaseRepository):
    """Repository for movement variants."""

    def add(
        self,
        movement_id: int,
        name: str,
        resistance_type: ResistanceType | str = ResistanceType.TOTAL,
        unit: str | None = None,
        increment: float | None = None,
        notes: str | None = None,
    ) -> int:
        rows = super().fetch_all(
            "SELECT id FROM movements WHERE id = ?;", (movement_id,)
        )
        if not rows:
            raise ValueError("movement not found")
        rtype = ResistanceType(resistance_type)
        return self.execute(
            "INSERT INTO movement_variants (movement_id, name, resistance_type, unit, increment, notes) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (movement_id, name, rtype.value, unit, increment, notes),
        )

    def remove(self, variant_id: int) -> None:
        self.execute("DELETE FROM movement_variants WHERE id = ?;", (variant_id,))


class TemplateRepository(BaseRepository):
    """Repository for workout templates and their items."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        super().__init__(db_path)
        self.movements = MovementRepository(db_path)

    def create(self, name: str, notes: str | None = None) -> int:
        return self.execute(
            "INSERT INTO workout_templates (name, notes, created_at) VALUES (?, ?, ?);",
            (name, notes, _format_timestamp(datetime.datetime.now(datetime.timezone.utc))),
        )

    def add_item(
        self,
        template_id: int,
        movement_id: int,
        variant_id: int | None = None,
        quantity: int = 1,
        target_sets: int | None = None,
    ) -> int:
        if variant_id is not None:
            owner = super().fetch_all(
                "SELECT movement_id FROM movement_variants WHERE id = ?;",
                (variant_id,),
            )
            if not owner or owner[0][0] != movement_id:
                raise ValueError("variant does not belong to movement")
        rows = super().fetch_all(
            "SELECT COALESCE(MAX(position), 0) + 1 FROM template_items WHERE template_id = ?;",
            (template_id,),
        )
        position = int(rows[0][0]) if rows else 1
        return self.execute(
            "INSERT INTO template_items (template_id, movement_id, variant_id, quantity, target_sets, position) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (template_id, movement_id, variant_id, quantity, target_sets, position),
        )

    def remove_item(self, item_id: int) -> None:
        self.execute("DELETE FROM template_items WHERE id = ?;", (item_id,))

    def delete(self, template_id: int) -> None:
        rows = super().fetch_all(
            "SELECT id FROM workout_templates WHERE id = ?;", (template_id,)
        )
        if not rows:
            raise ValueError("template not found")
        self.execute("DELETE FROM workout_templates WHERE id = ?;", (template_id,))

    def fetch_all_templates(self) -> List[WorkoutTemplate]:
        movements = self.movements.index()
        variants = {v.id: v for m in movements.values() for v in m.variants}
        templates = super().fetch_all(
            "SELECT id, name, notes, created_at FROM workout_templates ORDER BY id;"
        )
        items = super().fetch_all(
            "SELECT id, template_id, movement_id, variant_id, quantity, target_sets, position "
            "FROM template_items ORDER BY template_id, position, id;"
        )
        by_template: dict[int, list[TemplateItem]] = {}
        for iid, tid, mid, vid, qty, target, pos in items:
            by_template.setdefault(tid, []).append(
                TemplateItem(
                    id=iid,
                    template_id=tid,
                    movement=movements.get(mid),
                    preferred_variant=variants.get(vid),
                    quantity=int(qty),
                    target_sets=target,
                    ordering_index=int(pos),
                )
            )
        return [
            WorkoutTemplate(
                id=tid,
                name=name,
                notes=notes,
                created_at=_parse_timestamp(created),
                items=by_template.get(tid, []),
            )
            for tid, name, notes, created in templates
        ]

    def fetch(self, template_id: int) -> WorkoutTemplate:
        for template in self.fetch_all_templates():
            if template.id == template_id:
                return template
        raise ValueError("template not found")


class SessionRepository(BaseRepository):
    """Repository for workout sessions with nested movements and sets."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        super().__init__(db_path)
        self.movements = MovementRepository(db_path)

    @staticmethod
    def _insert_sets(
        conn: sqlite3.Connection, session_movement_id: int, sets: Iterable[PerformedSet]
    ) -> list[int]:
        ids: list[int] = []
        for s in sets:
            cur = conn.execute(
                "INSERT INTO performed_sets (session_movement_id, set_index, reps, weight, warmup, is_pr, completed, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?);",
                (
                    session_movement_id,
                    s.set_index,
                    s.reps,
                    s.weight,
                    int(s.is_warmup),
                    int(s.is_pr),
                    int(s.is_completed),
                    _format_timestamp(s.timestamp),
                ),
            )
            ids.append(cur.lastrowid)
        return ids

    def _insert_movement(
        self, conn: sqlite3.Connection, session_id: int, item: SessionMovement
    ) -> tuple[int, list[int]]:
        cur = conn.execute(
            "INSERT INTO session_movements (session_id, movement_id, variant_id, position, target_set_count, notes) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (
                session_id,
                item.movement.id if item.movement else None,
                item.variant.id if item.variant else None,
                item.ordering_index,
                item.target_set_count,
                item.notes,
            ),
        )
        mid = cur.lastrowid
        return mid, self._insert_sets(conn, mid, item.sets)

    @staticmethod
    def _assign_ids(
        session_id: int, item: SessionMovement, mid: int, set_ids: list[int]
    ) -> None:
        item.id = mid
        item.session_id = session_id
        for s, sid in zip(item.sets, set_ids):
            s.id = sid
            s.session_movement_id = mid

    def insert(self, session: WorkoutSession) -> int:
        """Store ``session`` with all of its movements and sets in one transaction."""
        assigned = []
        with self._connection() as conn:
            cur = conn.execute(
                "INSERT INTO workout_sessions (template_id, start_time, end_time, duration_seconds, status) "
                "VALUES (?, ?, ?, ?, ?);",
                (
                    session.template_id,
                    _format_timestamp(session.start_time),
                    _format_timestamp(session.end_time),
                    session.duration_seconds,
                    session.status.value,
                ),
            )
            sid = cur.lastrowid
            for item in session.movements:
                mid, set_ids = self._insert_movement(conn, sid, item)
                assigned.append((item, mid, set_ids))
        session.id = sid
        for item, mid, set_ids in assigned:
            self._assign_ids(sid, item, mid, set_ids)
        return sid

    def insert_movement(self, session_id: int, item: SessionMovement) -> int:
        """Store one session movement and its sets in one transaction."""
        with self._connection() as conn:
            mid, set_ids = self._insert_movement(conn, session_id, item)
        self._assign_ids(session_id, item, mid, set_ids)
        return mid

    def _load(self, where: str = "", params: Tuple = ()) -> List[WorkoutSession]:
        movements = self.movements.index()
        variants = {v.id: v for m in movements.values() for v in m.variants}
        with self._connection() as conn:
            session_rows = conn.execute(
                "SELECT s.id, s.template_id, t.name, s.start_time, s.end_time, s.duration_seconds, s.status "
                "FROM workout_sessions s LEFT JOIN workout_templates t ON s.template_id = t.id "
                f"{where} ORDER BY s.start_time, s.id;",
                params,
            ).fetchall()
            item_rows = conn.execute(
                "SELECT m.id, m.session_id, m.movement_id, m.variant_id, m.position, m.target_set_count, m.notes "
                "FROM session_movements m JOIN workout_sessions s ON m.session_id = s.id "
                f"{where} ORDER BY m.session_id, m.position, m.id;",
                params,
            ).fetchall()
            set_rows = conn.execute(
                "SELECT p.id, p.session_movement_id, p.set_index, p.reps, p.weight, p.warmup, p.is_pr, p.completed, p.timestamp "
                "FROM performed_sets p JOIN session_movements m ON p.session_movement_id = m.id "
                "JOIN workout_sessions s ON m.session_id = s.id "
                f"{where} ORDER BY p.session_movement_id, p.set_index, p.id;",
                params,
            ).fetchall()

        sets_by_item: dict[int, list[PerformedSet]] = {}
        for pid, mid, idx, reps, weight, warmup, is_pr, completed, ts in set_rows:
            sets_by_item.setdefault(mid, []).append(
                PerformedSet(
                    id=pid,
                    session_movement_id=mid,
                    set_index=int(idx),
                    reps=int(reps),
                    weight=float(weight),
                    is_warmup=bool(warmup),
                    is_pr=bool(is_pr),
                    is_completed=bool(completed),
                    timestamp=_parse_timestamp(ts),
                )
            )
        items_by_session: dict[int, list[SessionMovement]] = {}
        for mid, sid, movement_id, variant_id, pos, target, notes in item_rows:
            items_by_session.setdefault(sid, []).append(
                SessionMovement(
                    id=mid,
                    session_id=sid,
                    movement=movements.get(movement_id),
                    variant=variants.get(variant_id),
                    ordering_index=int(pos),
                    target_set_count=int(target),
                    notes=notes,
                    sets=sets_by_item.get(mid, []),
                )
            )
        return [
            WorkoutSession(
                id=sid,
                template_id=tid,
                template_name=tname,
                start_time=_parse_timestamp(start),
                end_time=_parse_timestamp(end),
                duration_seconds=int(duration),
                status=SessionStatus(status),
                movements=items_by_session.get(sid, []),
            )
            for sid, tid, tname, start, end, duration, status in session_rows
        ]

    def fetch_all_sessions(
        self, status: SessionStatus | str | None = None
    ) -> List[WorkoutSession]:
        """Return every session, oldest first, optionally filtered by status."""
        if status is None:
            return self._load()
        return self._load("WHERE s.status = ?", (SessionStatus(status).value,))

    def fetch(self, session_id: int) -> WorkoutSession:
        rows = self._load("WHERE s.id = ?", (session_id,))
        if not rows:
            raise ValueError("session not found")
        return rows[0]

    def fetch_session_id_for_movement(self, session_movement_id: int) -> int:
        rows = super().fetch_all(
            "SELECT session_id FROM session_movements WHERE id = ?;",
            (session_movement_id,),
        )
        if not rows:
            raise ValueError("session movement not found")
        return int(rows[0][0])

    def select_variant(self, session_movement_id: int, variant_id: int | None) -> None:
        rows = super().fetch_all(
            "SELECT movement_id FROM session_movements WHERE id = ?;",
            (session_movement_id,),
        )
        if not rows:
            raise ValueError("session movement not found")
        if variant_id is not None:
            owner = super().fetch_all(
                "SELECT movement_id FROM movement_variants WHERE id = ?;",
                (variant_id,),
            )
            if not owner or owner[0][0] != rows[0][0]:
                raise ValueError("variant does not belong to movement")
        self.execute(
            "UPDATE session_movements SET variant_id = ? WHERE id = ?;",
            (variant_id, session_movement_id),
        )

    def save_finish(
        self,
        session_id: int,
        end_time: datetime.datetime,
        duration_seconds: int,
        flags: Iterable[tuple[int, bool]],
    ) -> None:
        """Mark a session completed and store its record flags atomically."""
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE workout_sessions SET status = ?, end_time = ?, duration_seconds = ? "
                "WHERE id = ? AND status = ?;",
                (
                    SessionStatus.COMPLETED.value,
                    _format_timestamp(end_time),
                    duration_seconds,
                    session_id,
                    SessionStatus.IN_PROGRESS.value,
                ),
            )
            if cur.rowcount == 0:
                raise ValueError("session is not in progress")
            conn.executemany(
                "UPDATE performed_sets SET is_pr = ? WHERE id = ?;",
                [(int(is_pr), set_id) for set_id, is_pr in flags],
            )

    def save_cancel(self, session_id: int, end_time: datetime.datetime) -> None:
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE workout_sessions SET status = ?, end_time = ? WHERE id = ? AND status = ?;",
                (
                    SessionStatus.CANCELLED.value,
                    _format_timestamp(end_time),
                    session_id,
                    SessionStatus.IN_PROGRESS.value,
                ),
            )
            if cur.rowcount == 0:
                raise ValueError("session is not in progress")

    def delete(self, session_id: int) -> None:
        rows = super().fetch_all(
            "SELECT id FROM workout_sessions WHERE id = ?;", (session_id,)
        )
        if not rows:
            raise ValueError("session not found")
        self.execute("DELETE FROM workout_sessions WHERE id = ?;", (session_id,))


class SetRepository(BaseRepository):
    """Repository for performed sets."""

    def add(
        self,
        session_movement_id: int,
        reps: int = 0,
        weight: float = 0.0,
        warmup: bool = False,
        timestamp: datetime.datetime | None = None,
    ) -> int:
        if reps < 0:
            raise ValueError("reps must be non-negative")
        if weight < 0:
            raise ValueError("weight must be non-negative")
        rows = super().fetch_all(
            "SELECT id FROM session_movements WHERE id = ?;", (session_movement_id,)
        )
        if not rows:
            raise ValueError("session movement not found")
        rows = super().fetch_all(
            "SELECT COALESCE(MAX(set_index), 0) + 1 FROM performed_sets WHERE session_movement_id = ?;",
            (session_movement_id,),
        )
        set_index = int(rows[0][0]) if rows else 1
        ts = timestamp or datetime.datetime.now(datetime.timezone.utc)
        return self.execute(
            "INSERT INTO performed_sets (session_movement_id, set_index, reps, weight, warmup, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (session_movement_id, set_index, reps, weight, int(warmup), _format_timestamp(ts)),
        )

    def update(
        self,
        set_id: int,
        reps: int | None = None,
        weight: float | None = None,
        warmup: bool | None = None,
        completed: bool | None = None,
    ) -> None:
        if reps is not None and reps < 0:
            raise ValueError("reps must be non-negative")
        if weight is not None and weight < 0:
            raise ValueError("weight must be non-negative")
        self.fetch_detail(set_id)
        assignments: list[str] = []
        params: list = []
        if reps is not None:
            assignments.append("reps = ?")
            params.append(int(reps))
        if weight is not None:
            assignments.append("weight = ?")
            params.append(float(weight))
        if warmup is not None:
            assignments.append("warmup = ?")
            params.append(int(warmup))
        if completed is not None:
            assignments.append("completed = ?")
            params.append(int(completed))
        if not assignments:
            return
        params.append(set_id)
        self.execute(
            f"UPDATE performed_sets SET {', '.join(assignments)} WHERE id = ?;",
            tuple(params),
        )

    def remove(self, set_id: int) -> None:
        """Delete a set and renumber the remaining sets of its movement from 1."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT session_movement_id FROM performed_sets WHERE id = ?;",
                (set_id,),
            ).fetchall()
            if not rows:
                raise ValueError("set not found")
            owner = rows[0][0]
            conn.execute("DELETE FROM performed_sets WHERE id = ?;", (set_id,))
            remaining = conn.execute(
                "SELECT id FROM performed_sets WHERE session_movement_id = ? ORDER BY set_index, id;",
                (owner,),
            ).fetchall()
            conn.executemany(
                "UPDATE performed_sets SET set_index = ? WHERE id = ?;",
                [(pos, sid) for pos, (sid,) in enumerate(remaining, start=1)],
            )

    def fetch_detail(self, set_id: int) -> dict:
        rows = super().fetch_all(
            "SELECT id, session_movement_id, set_index, reps, weight, warmup, is_pr, completed, timestamp "
            "FROM performed_sets WHERE id = ?;",
            (set_id,),
        )
        if not rows:
            raise ValueError("set not found")
        sid, mid, idx, reps, weight, warmup, is_pr, completed, ts = rows[0]
        return {
            "id": sid,
            "session_movement_id": mid,
            "set_index": int(idx),
            "reps": int(reps),
            "weight": float(weight),
            "warmup": bool(warmup),
            "is_pr": bool(is_pr),
            "completed": bool(completed),
            "timestamp": ts,
        }

    def fetch_for_movement(self, session_movement_id: int) -> list[dict]:
        rows = super().fetch_all(
            "SELECT id FROM performed_sets WHERE session_movement_id = ? ORDER BY set_index;",
            (session_movement_id,),
        )
        return [self.fetch_detail(r[0]) for r in rows]


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    _INT_KEYS = {"week_start", "default_set_count"}

    def __init__(
        self, db_path: str = DEFAULT_DB_PATH, yaml_path: str = DEFAULT_SETTINGS_PATH
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | str] = {}
        for k, v in rows:
            if k in self._INT_KEYS:
                try:
                    result[k] = int(float(v))
                    continue
                except ValueError:
                    pass
            result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        data = self._raw_all_settings()
        data[key] = value
        validate_settings(data)
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()

    def schema(self) -> SettingsSchema:
        """Return the validated settings object."""
        return SettingsSchema(**self.all_settings())
