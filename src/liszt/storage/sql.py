"""
SQLite Registrar - relational backend.

Tables:
- buildings: id, name
- units: id, name (unique), building_id → buildings.id
- residents: id, firstname, middlename, lastname, unit_id → units.id

Every write runs in its own IMMEDIATE transaction, so reference checks
and the write they guard commit together and reads see writes at once.
Foreign keys are enforced when child rows are written. Parent rows are
deleted with enforcement off: dependents are left dangling, never
cascaded or reassigned.
"""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from liszt.core.config import get_logger
from liszt.core.context import RequestContext
from liszt.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    UnavailableError,
)
from liszt.core.types import Building, Resident, Unit
from liszt.storage.registrar import (
    Registrar,
    prepare_building,
    prepare_resident,
    prepare_unit,
    require_id,
    require_text,
)

logger = get_logger("storage.sql")

# Lock wait when the caller set no deadline
DEFAULT_BUSY_TIMEOUT = 5.0

# VM instructions between cancellation checks
PROGRESS_INTERVAL = 1000

SCHEMA = """
CREATE TABLE IF NOT EXISTS buildings (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS units (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    building_id TEXT,
    FOREIGN KEY (building_id) REFERENCES buildings(id)
);

CREATE TABLE IF NOT EXISTS residents (
    id TEXT PRIMARY KEY,
    firstname TEXT NOT NULL DEFAULT '',
    middlename TEXT NOT NULL DEFAULT '',
    lastname TEXT NOT NULL DEFAULT '',
    unit_id TEXT,
    FOREIGN KEY (unit_id) REFERENCES units(id)
);

CREATE INDEX IF NOT EXISTS idx_units_building ON units(building_id);
CREATE INDEX IF NOT EXISTS idx_residents_unit ON residents(unit_id);
"""


class SQLRegistrar(Registrar):
    """
    Registrar backed by a SQLite database file.
    
    A connection is opened per operation, so one instance can be shared
    by concurrent callers; SQLite's locking serializes their writes.
    """
    
    def __init__(self, db_path: Path | str):
        """Initialize the registrar and create the schema if needed."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
    
    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection(RequestContext.background(), "initialize schema") as conn:
            conn.executescript(SCHEMA)
        logger.debug(f"Initialized registry schema at {self.db_path}")
    
    @contextmanager
    def _get_connection(
        self,
        ctx: RequestContext,
        action: str,
        foreign_keys: bool = True,
    ) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection bound to the request context.
        
        Statements are interrupted once the context is done, and sqlite3
        errors raised inside the block are translated to registry errors.
        """
        ctx.check()
        remaining = ctx.remaining()
        busy_timeout = DEFAULT_BUSY_TIMEOUT if remaining is None else remaining
        
        try:
            conn = sqlite3.connect(self.db_path, timeout=busy_timeout, isolation_level=None)
        except sqlite3.Error as e:
            logger.error(f"[{ctx.request_id}] Cannot open {self.db_path}: {e}")
            raise UnavailableError(f"{action}: {e}") from e
        
        conn.row_factory = sqlite3.Row
        conn.set_progress_handler(lambda: 1 if ctx.done else 0, PROGRESS_INTERVAL)
        try:
            conn.execute(f"PRAGMA foreign_keys = {'ON' if foreign_keys else 'OFF'}")
            yield conn
        except UnicodeEncodeError as e:
            # Lone surrogates cannot be bound as TEXT
            raise InvalidArgumentError(f"{action}: text is not valid UTF-8") from e
        except sqlite3.IntegrityError as e:
            logger.warning(f"[{ctx.request_id}] {action} rejected: {e}")
            raise ConflictError(f"{action}: {e}") from e
        except sqlite3.Error as e:
            err = ctx.error()
            if err is not None:
                raise err from e
            logger.error(f"[{ctx.request_id}] {action} failed: {e}")
            raise UnavailableError(f"{action}: {e}") from e
        finally:
            conn.close()
    
    @contextmanager
    def _transaction(
        self,
        ctx: RequestContext,
        action: str,
        foreign_keys: bool = True,
    ) -> Generator[sqlite3.Connection, None, None]:
        """Run the block in one write transaction; roll back on any error."""
        with self._get_connection(ctx, action, foreign_keys) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    # The rollback itself must not be interrupted
                    conn.set_progress_handler(None, 0)
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
    
    # ============================================
    # Buildings
    # ============================================
    
    def register_building(self, ctx: RequestContext, building: Building | None) -> Building:
        building = prepare_building(building)
        
        with self._transaction(ctx, "register building") as conn:
            conn.execute(
                "INSERT INTO buildings (id, name) VALUES (?, ?)",
                (building.id, building.name),
            )
        
        logger.info(f"[{ctx.request_id}] Registered building {building.id} ({building.name})")
        return building
    
    def get_building_by_id(self, ctx: RequestContext, building_id: str) -> Building | None:
        with self._get_connection(ctx, "get building") as conn:
            row = conn.execute(
                "SELECT id, name FROM buildings WHERE id = ?", (building_id,)
            ).fetchone()
        
        if row:
            return Building(**dict(row))
        return None
    
    def list_buildings(self, ctx: RequestContext) -> list[Building]:
        with self._get_connection(ctx, "list buildings") as conn:
            rows = conn.execute("SELECT id, name FROM buildings ORDER BY id").fetchall()
        
        return [Building(**dict(row)) for row in rows]
    
    def deregister_building(self, ctx: RequestContext, building_id: str) -> None:
        with self._transaction(ctx, "deregister building", foreign_keys=False) as conn:
            cursor = conn.execute("DELETE FROM buildings WHERE id = ?", (building_id,))
        
        if cursor.rowcount > 0:
            logger.info(f"[{ctx.request_id}] Deregistered building {building_id}")
    
    # ============================================
    # Units
    # ============================================
    
    def register_unit(self, ctx: RequestContext, unit: Unit | None) -> Unit:
        unit = prepare_unit(unit)
        
        with self._transaction(ctx, "register unit") as conn:
            conn.execute(
                "INSERT INTO units (id, name, building_id) VALUES (?, ?, ?)",
                (unit.id, unit.name, unit.building_id),
            )
        
        logger.info(f"[{ctx.request_id}] Registered unit {unit.id} ({unit.name})")
        return unit
    
    def get_unit_by_id(self, ctx: RequestContext, unit_id: str) -> Unit | None:
        with self._get_connection(ctx, "get unit") as conn:
            row = conn.execute(
                "SELECT id, name, building_id FROM units WHERE id = ?", (unit_id,)
            ).fetchone()
        
        if row:
            return Unit(**dict(row))
        return None
    
    def get_unit_by_name(self, ctx: RequestContext, name: str) -> Unit | None:
        require_text(name, "unit name")
        
        with self._get_connection(ctx, "get unit by name") as conn:
            row = conn.execute(
                "SELECT id, name, building_id FROM units WHERE name = ?", (name,)
            ).fetchone()
        
        if row:
            return Unit(**dict(row))
        return None
    
    def list_units(self, ctx: RequestContext, building_id: str | None = None) -> list[Unit]:
        with self._get_connection(ctx, "list units") as conn:
            if building_id is None:
                rows = conn.execute(
                    "SELECT id, name, building_id FROM units ORDER BY id"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT id, name, building_id FROM units WHERE building_id = ? ORDER BY id",
                    (building_id,),
                ).fetchall()
        
        return [Unit(**dict(row)) for row in rows]
    
    def deregister_unit(self, ctx: RequestContext, unit_id: str) -> None:
        with self._transaction(ctx, "deregister unit", foreign_keys=False) as conn:
            cursor = conn.execute("DELETE FROM units WHERE id = ?", (unit_id,))
        
        if cursor.rowcount > 0:
            logger.info(f"[{ctx.request_id}] Deregistered unit {unit_id}")
    
    # ============================================
    # Residents
    # ============================================
    
    def register_resident(self, ctx: RequestContext, resident: Resident | None) -> Resident:
        resident = prepare_resident(resident)
        
        with self._transaction(ctx, "register resident") as conn:
            if resident.unit_id is not None:
                self._require_unit(conn, resident.unit_id)
            conn.execute(
                """
                INSERT INTO residents (id, firstname, middlename, lastname, unit_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                (resident.id, resident.firstname, resident.middlename,
                 resident.lastname, resident.unit_id),
            )
        
        logger.info(f"[{ctx.request_id}] Registered resident {resident.id}")
        return resident
    
    def get_resident_by_id(self, ctx: RequestContext, resident_id: str) -> Resident | None:
        with self._get_connection(ctx, "get resident") as conn:
            row = conn.execute(
                """
                SELECT id, firstname, middlename, lastname, unit_id
                FROM residents WHERE id = ?
                """,
                (resident_id,),
            ).fetchone()
        
        if row:
            return Resident(**dict(row))
        return None
    
    def list_unit_residents(self, ctx: RequestContext, unit_id: str) -> list[Resident]:
        with self._get_connection(ctx, "list unit residents") as conn:
            rows = conn.execute(
                """
                SELECT id, firstname, middlename, lastname, unit_id
                FROM residents WHERE unit_id = ? ORDER BY id
                """,
                (unit_id,),
            ).fetchall()
        
        return [Resident(**dict(row)) for row in rows]
    
    def deregister_resident(self, ctx: RequestContext, resident_id: str) -> None:
        with self._transaction(ctx, "deregister resident") as conn:
            cursor = conn.execute("DELETE FROM residents WHERE id = ?", (resident_id,))
        
        if cursor.rowcount > 0:
            logger.info(f"[{ctx.request_id}] Deregistered resident {resident_id}")
    
    def move_resident(self, ctx: RequestContext, resident_id: str, unit_id: str) -> None:
        require_id(unit_id, "unit")
        
        with self._transaction(ctx, "move resident") as conn:
            row = conn.execute(
                "SELECT 1 FROM residents WHERE id = ?", (resident_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"resident {resident_id} not found")
            self._require_unit(conn, unit_id)
            conn.execute(
                "UPDATE residents SET unit_id = ? WHERE id = ?", (unit_id, resident_id)
            )
        
        logger.info(f"[{ctx.request_id}] Moved resident {resident_id} to unit {unit_id}")
    
    def _require_unit(self, conn: sqlite3.Connection, unit_id: str) -> None:
        """Raise NotFoundError unless the unit exists."""
        row = conn.execute("SELECT 1 FROM units WHERE id = ?", (unit_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"unit {unit_id} not found")
