"""
Database adapter that works with both Supabase and SQLite

This allows tests to use SQLite (fast, local) while production uses Supabase.
The adapter provides a unified interface that works with both backends.
"""
from typing import Optional, Dict, List, Any, Union
from sqlalchemy import create_engine, Column, String, Integer, Boolean, DateTime, Text, JSON, Float
from sqlalchemy import and_, or_, cast
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime, UTC
import json
import uuid

Base = declarative_base()

SCHEMA_VERSION = 1


def utcnow_naive():
    """
    Return current UTC time as a naive datetime (tzinfo=None).
    Avoids deprecated datetime.utcnow() while keeping existing schema semantics.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _new_id():
    return str(uuid.uuid4())


# SQLAlchemy models for SQLite
class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)  # auth identity id
    display_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    whatsapp_number = Column(String, nullable=False)
    role = Column(String, nullable=False)  # 'shop_owner', 'mechanic', 'buyer'
    avatar_url = Column(String, default="")
    location_zone = Column(String, nullable=False)
    shop_id = Column(String)
    market_id = Column(String, nullable=False)
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    created_at = Column(DateTime, default=utcnow_naive)
    last_active_at = Column(DateTime, default=utcnow_naive)


class Shop(Base):
    __tablename__ = "shops"

    id = Column(String, primary_key=True, default=_new_id)
    owner_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    zone = Column(String, nullable=False)
    categories = Column(JSON, default=list)
    whatsapp_number = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    description = Column(Text, default="")
    avatar_url = Column(String, default="")
    market_id = Column(String, nullable=False)
    verified = Column(Boolean, default=False)
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    last_activity_at = Column(DateTime, default=utcnow_naive)
    created_at = Column(DateTime, default=utcnow_naive)


class FeedPost(Base):
    __tablename__ = "feed_posts"

    id = Column(String, primary_key=True, default=_new_id)
    type = Column(String, default="request")  # 'request', 'social_sale'
    author_id = Column(String, nullable=False)
    part_name = Column(String, nullable=False)
    car_model = Column(String, nullable=False)
    year = Column(String)
    description = Column(Text, default="")
    images = Column(JSON, default=list)
    urgent = Column(Boolean, default=False)
    location_zone = Column(String, nullable=False)
    market_id = Column(String, nullable=False)
    category = Column(String)
    response_count = Column(Integer, default=0)
    interested_count = Column(Integer, default=0)
    status = Column(String, default="active")  # 'active', 'resolved', 'expired'
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    last_activity_at = Column(DateTime, default=utcnow_naive)
    created_at = Column(DateTime, default=utcnow_naive)


class MarketplaceListing(Base):
    __tablename__ = "marketplace_listings"

    id = Column(String, primary_key=True, default=_new_id)
    seller_id = Column(String, nullable=False)
    shop_id = Column(String)
    title = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    currency = Column(String, default="UGX")
    condition = Column(String, nullable=False)  # 'new', 'used', 'refurbished'
    category = Column(String, nullable=False)
    car_model = Column(String)
    description = Column(Text, default="")
    images = Column(JSON, default=list)
    location_zone = Column(String, nullable=False)
    market_id = Column(String, nullable=False)
    engagement_count = Column(Integer, default=0)
    status = Column(String, default="active")  # 'active', 'sold', 'expired'
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    last_activity_at = Column(DateTime, default=utcnow_naive)
    created_at = Column(DateTime, default=utcnow_naive)


class PostResponse(Base):
    __tablename__ = "post_responses"

    id = Column(String, primary_key=True, default=_new_id)
    post_id = Column(String, nullable=False)
    post_type = Column(String, nullable=False)  # 'feed', 'marketplace'
    responder_id = Column(String, nullable=False)
    shop_id = Column(String)
    message = Column(Text, nullable=False)
    price = Column(Float)
    images = Column(JSON, default=list)
    whatsapp_taps = Column(Integer, default=0)
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    created_at = Column(DateTime, default=utcnow_naive)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False)
    type = Column(String, nullable=False)  # 'response', 'mention', 'category_match'
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    reference_id = Column(String, nullable=False)
    reference_type = Column(String, nullable=False)
    read = Column(Boolean, default=False)
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    created_at = Column(DateTime, default=utcnow_naive)


class ActivitySignal(Base):
    __tablename__ = "activity_signals"

    id = Column(String, primary_key=True, default=_new_id)
    type = Column(String, nullable=False)  # 'whatsapp_tap', 'post_view', 'response_click'
    reference_id = Column(String, nullable=False)
    user_id = Column(String)
    signal_metadata = Column(JSON, default=dict)  # 'metadata' is reserved by SQLAlchemy
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    created_at = Column(DateTime, default=utcnow_naive)


class Report(Base):
    __tablename__ = "reports"

    id = Column(String, primary_key=True, default=_new_id)
    reporter_id = Column(String, nullable=False)
    target_id = Column(String, nullable=False)
    target_type = Column(String, nullable=False)  # 'post', 'response', 'user', 'shop'
    reason = Column(String, nullable=False)
    description = Column(Text)
    status = Column(String, default="pending")
    schema_version = Column(Integer, default=SCHEMA_VERSION)
    created_at = Column(DateTime, default=utcnow_naive)
    reviewed_at = Column(DateTime)
    reviewed_by = Column(String)


class DatabaseAdapter:
    """
    Database adapter that works with both Supabase and SQLite

    Usage:
        # Automatically uses SQLite if DATABASE_URL is set (tests)
        # Otherwise uses Supabase (production)

        db = DatabaseAdapter(settings)
        db.init()

        # Same API for both backends
        result = db.table("feed_posts").select("*").eq("id", "123").execute()
        db.increment("feed_posts", "123", "response_count", bump_activity=True)
    """

    def __init__(self, settings=None):
        from config import get_settings
        self.settings = settings or get_settings()
        self.engine = None
        self.Session = None
        self.supabase = None
        self._initialized = False

        # Determine which backend to use
        if self.settings.DATABASE_URL:
            # Use SQLite (tests)
            self.backend = "sqlite"
            db_url = self.settings.DATABASE_URL.replace("sqlite+aiosqlite://", "sqlite://")
            self.engine = create_engine(db_url, echo=False)
            self.Session = sessionmaker(bind=self.engine)
        elif self.settings.SUPABASE_URL:
            # Use Supabase (production)
            self.backend = "supabase"
            from supabase import create_client
            self.supabase = create_client(
                self.settings.SUPABASE_URL,
                self.settings.SUPABASE_KEY
            )
        else:
            raise ValueError("Must provide either DATABASE_URL or SUPABASE_URL")

    def init(self):
        """Initialize database (create tables for SQLite)"""
        if self.backend == "sqlite" and not self._initialized:
            Base.metadata.create_all(self.engine)
            self._initialized = True

    def cleanup(self):
        """Clean up database (for testing)"""
        if self.backend == "sqlite":
            Base.metadata.drop_all(self.engine)
            Base.metadata.create_all(self.engine)

    def table(self, table_name: str):
        """Get table interface (compatible with Supabase API)"""
        if self.backend == "sqlite":
            return SQLiteTable(table_name, self.Session)
        else:
            return self.supabase.table(table_name)

    def increment(self, table_name: str, row_id: str, column: str, amount: int = 1,
                  bump_activity: bool = False) -> Optional[Dict[str, Any]]:
        """
        Atomically add `amount` to a counter column of one row.

        The addition happens inside the store (no read-modify-write on the client),
        so concurrent increments from different requests never lose updates.
        With bump_activity, last_activity_at is set to now in the same statement.

        Returns the updated row, or None when no row has that id.
        """
        if self.backend == "sqlite":
            model = SQLiteTable.MODELS.get(table_name)
            if model is None:
                raise ValueError(f"Unknown table: {table_name}")
            col = getattr(model, column)
            values = {col: col + amount}
            if bump_activity:
                values[model.last_activity_at] = utcnow_naive()

            session = self.Session()
            try:
                updated = session.query(model).filter(model.id == row_id).update(
                    values, synchronize_session=False
                )
                session.commit()
                if not updated:
                    return None
                obj = session.query(model).filter(model.id == row_id).first()
                return SQLiteTable.model_to_dict(obj)
            finally:
                session.close()

        # Supabase: see migrations/001_initial_schema.sql for increment_counter
        response = self.supabase.rpc("increment_counter", {
            "target_table": table_name,
            "row_id": row_id,
            "counter": column,
            "amount": amount,
            "bump_activity": bump_activity,
        }).execute()
        rows = response.data or []
        if isinstance(rows, dict):
            rows = [rows]
        return rows[0] if rows else None


class SQLiteTable:
    """
    SQLite table interface that mimics Supabase table API

    Provides a similar interface to Supabase for compatibility, including
    PostgREST-style `or_` logic trees used for keyset pagination and search.
    """

    # Map table names to SQLAlchemy models
    MODELS = {
        "users": User,
        "shops": Shop,
        "feed_posts": FeedPost,
        "marketplace_listings": MarketplaceListing,
        "post_responses": PostResponse,
        "notifications": Notification,
        "activity_signals": ActivitySignal,
        "reports": Report,
    }

    def __init__(self, table_name: str, Session):
        self.table_name = table_name
        self.Session = Session
        self.model = self.MODELS.get(table_name)
        self._select_cols = "*"
        self._filters = []
        self._insert_data = None
        self._update_data = None
        self._delete = False
        self._limit_val = None
        self._offset_val = None
        self._orders = []

        if not self.model:
            raise ValueError(f"Unknown table: {table_name}")

    def select(self, columns: str = "*", count: Optional[str] = None):
        """Select columns (count is accepted for Supabase compatibility)"""
        self._select_cols = columns
        return self

    def insert(self, data: Union[Dict, List[Dict]]):
        """Insert data"""
        self._insert_data = data if isinstance(data, list) else [data]
        return self

    def update(self, data: Dict):
        """Update data"""
        self._update_data = data
        return self

    def eq(self, column: str, value: Any):
        """Filter by equality"""
        self._filters.append((column, "==", value))
        return self

    def neq(self, column: str, value: Any):
        """Filter by inequality"""
        self._filters.append((column, "!=", value))
        return self

    def gt(self, column: str, value: Any):
        """Filter by greater than"""
        self._filters.append((column, ">", value))
        return self

    def lt(self, column: str, value: Any):
        """Filter by less than"""
        self._filters.append((column, "<", value))
        return self

    def limit(self, count: int):
        """Limit results"""
        self._limit_val = count
        return self

    def range(self, start: int, end: int):
        """Range-based pagination (Supabase compatible)"""
        self._offset_val = start
        self._limit_val = end - start + 1
        return self

    def ilike(self, column: str, pattern: Any):
        """Case-insensitive pattern match (SQLite fallback)"""
        self._filters.append((column, "ilike", pattern))
        return self

    def in_(self, column: str, values: List[Any]):
        """Filter by inclusion set"""
        self._filters.append((column, "in", values))
        return self

    def contains(self, column: str, values: List[Any]):
        """JSON array column contains every given value"""
        self._filters.append((column, "contains", values))
        return self

    def or_(self, filters: str):
        """PostgREST logic tree, e.g. "urgent.lt.true,and(urgent.eq.true,id.lt.x)" """
        self._filters.append((None, "or", filters))
        return self

    def order(self, column: str, desc: bool = False):
        """Order results; repeated calls add secondary sort keys"""
        self._orders.append((column, desc))
        return self

    def delete(self):
        """Delete matching records"""
        self._delete = True
        return self

    def execute(self):
        """Execute the query"""
        session = self.Session()

        try:
            # Handle INSERT
            if self._insert_data:
                objects = []
                for item in self._insert_data:
                    obj = self.model(**self._prepare_data(item))
                    session.add(obj)
                    objects.append(obj)
                session.commit()

                # Refresh to get generated values
                for obj in objects:
                    session.refresh(obj)

                data = [self.model_to_dict(obj) for obj in objects]
                return type('Result', (), {'data': data, 'count': len(data)})()

            # Handle UPDATE
            elif self._update_data:
                query = session.query(self.model)
                query = self._apply_filters(query)

                objects = query.all()

                prepared_update = self._prepare_data(self._update_data)
                for obj in objects:
                    for key, value in prepared_update.items():
                        setattr(obj, key, value)

                session.commit()

                for obj in objects:
                    session.refresh(obj)

                data = [self.model_to_dict(obj) for obj in objects]
                return type('Result', (), {'data': data, 'count': len(data)})()

            # Handle DELETE
            elif self._delete:
                query = session.query(self.model)
                query = self._apply_filters(query)
                count = query.delete(synchronize_session=False)
                session.commit()
                return type('Result', (), {'data': [], 'count': count})()

            # Handle SELECT
            else:
                query = session.query(self.model)
                query = self._apply_filters(query)

                for column, desc in self._orders:
                    col = getattr(self.model, column)
                    query = query.order_by(col.desc() if desc else col)

                if self._offset_val is not None:
                    query = query.offset(self._offset_val)

                if self._limit_val:
                    query = query.limit(self._limit_val)

                results = query.all()
                data = [self._project(self.model_to_dict(obj)) for obj in results]
                return type('Result', (), {'data': data, 'count': len(data)})()

        finally:
            session.close()

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self._select_cols.strip() == "*":
            return row
        wanted = [c.strip() for c in self._select_cols.split(",") if c.strip()]
        return {c: row.get(c) for c in wanted}

    def _apply_filters(self, query):
        """Apply filters to query"""
        for column, op, value in self._filters:
            if op == "or":
                query = query.filter(self._parse_logic("or", value))
                continue
            col = getattr(self.model, column)
            if op in ("==", "!=", ">", "<"):
                value = self._coerce(col, value)
            if op == "==":
                query = query.filter(col == value)
            elif op == "!=":
                query = query.filter(col != value)
            elif op == ">":
                query = query.filter(col > value)
            elif op == "<":
                query = query.filter(col < value)
            elif op == "ilike":
                query = query.filter(col.ilike(value))
            elif op == "in":
                query = query.filter(col.in_(value))
            elif op == "contains":
                for item in value:
                    query = query.filter(cast(col, String).like(f"%{json.dumps(item)}%"))
        return query

    # ----- PostgREST logic tree support -----

    def _parse_logic(self, operator: str, expr: str):
        clauses = []
        for term in _split_terms(expr):
            if term.startswith("and(") and term.endswith(")"):
                clauses.append(self._parse_logic("and", term[4:-1]))
            elif term.startswith("or(") and term.endswith(")"):
                clauses.append(self._parse_logic("or", term[3:-1]))
            else:
                clauses.append(self._parse_condition(term))
        return and_(*clauses) if operator == "and" else or_(*clauses)

    def _parse_condition(self, term: str):
        column, op, raw = term.split(".", 2)
        if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
            raw = raw[1:-1]
        col = getattr(self.model, column)
        if op == "ilike":
            return col.ilike(raw.replace("*", "%"))
        value = self._coerce(col, raw)
        if op == "eq":
            return col == value
        if op == "neq":
            return col != value
        if op == "lt":
            return col < value
        if op == "lte":
            return col <= value
        if op == "gt":
            return col > value
        if op == "gte":
            return col >= value
        raise ValueError(f"Unsupported filter operator: {op}")

    @staticmethod
    def _coerce(col, value):
        """Convert string filter values to the Python type of the column"""
        if not isinstance(value, str):
            if isinstance(value, datetime):
                return to_naive_utc(value)
            return value
        python_type = None
        try:
            python_type = col.type.python_type
        except NotImplementedError:
            return value
        if python_type is bool:
            return value.lower() == "true"
        if python_type is datetime:
            return to_naive_utc(datetime.fromisoformat(value))
        if python_type in (int, float):
            return python_type(value)
        return value

    @staticmethod
    def model_to_dict(obj):
        """Convert SQLAlchemy model to dict"""
        result = {}
        for column in obj.__table__.columns:
            value = getattr(obj, column.name)
            # Convert datetime to ISO string
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.name] = value
        return result

    def _prepare_data(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Keep only model columns and parse ISO timestamps for DateTime columns."""
        prepared: Dict[str, Any] = {}
        columns = {col.name: col for col in self.model.__table__.columns}

        for key, value in item.items():
            if key not in columns:
                continue
            if isinstance(columns[key].type, DateTime):
                if isinstance(value, str):
                    value = datetime.fromisoformat(value)
                if isinstance(value, datetime):
                    value = to_naive_utc(value)
            prepared[key] = value

        return prepared


def _split_terms(expr: str) -> List[str]:
    """Split a logic tree on top-level commas, honouring parentheses and quotes."""
    terms = []
    depth = 0
    in_quotes = False
    current = []
    for ch in expr:
        if ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes and ch == "(":
            depth += 1
        elif not in_quotes and ch == ")":
            depth -= 1
        elif not in_quotes and depth == 0 and ch == ",":
            terms.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if current:
        terms.append("".join(current).strip())
    return [t for t in terms if t]
