"""Create orders, status history, drivers, trips and customer accounts.

Raw SQL keeps the enum DDL explicit; ``CREATE TYPE`` is wrapped so a rerun
against a partially initialised database does not fail on existing types.
"""

from alembic import op

# revision identifiers
revision = "001_create_fulfillment_tables"
down_revision = None
branch_labels = None
depends_on = None


def _create_enum(name: str, values: tuple[str, ...]) -> None:
    labels = ",".join(f"'{v}'" for v in values)
    op.execute(
        "DO $$ BEGIN "
        f"  CREATE TYPE {name} AS ENUM ({labels});"
        "EXCEPTION WHEN duplicate_object THEN NULL; "
        "END $$;"
    )


def upgrade() -> None:
    _create_enum(
        "order_status",
        (
            "pending", "confirmed", "scheduled", "picked_up", "at_facility",
            "cleaning", "ready", "out_for_delivery", "delivered", "cancelled",
        ),
    )
    _create_enum("driver_status", ("active", "break", "offline"))
    _create_enum("trip_type", ("pickup", "delivery"))

    # ── Drivers ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE drivers (
            id              UUID            PRIMARY KEY,
            name            VARCHAR(100)    NOT NULL,
            phone           VARCHAR(30)     NOT NULL,
            email           VARCHAR(255),
            zone_id         VARCHAR(50),
            vehicle_info    TEXT,
            status          driver_status   NOT NULL DEFAULT 'offline',
            rating          NUMERIC(3, 2),
            on_time_rate    NUMERIC(5, 2),
            max_orders      INTEGER         NOT NULL DEFAULT 10,
            created_by      VARCHAR(100),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT now(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT now()
        );
    """)

    # ── Orders ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE orders (
            id                  UUID            PRIMARY KEY,
            order_number        VARCHAR(32)     NOT NULL UNIQUE,
            customer_id         VARCHAR(100)    NOT NULL,
            status              order_status    NOT NULL DEFAULT 'pending',
            service_type        VARCHAR(50)     NOT NULL,
            subtotal            NUMERIC(10, 2)  NOT NULL DEFAULT 0,
            delivery_fee        NUMERIC(10, 2)  NOT NULL DEFAULT 0,
            discount            NUMERIC(10, 2)  NOT NULL DEFAULT 0,
            total               NUMERIC(10, 2)  NOT NULL DEFAULT 0,
            pickup_address      TEXT            NOT NULL,
            delivery_address    TEXT            NOT NULL,
            pickup_date         DATE,
            pickup_time_slot    VARCHAR(50),
            delivery_date       DATE,
            delivery_time_slot  VARCHAR(50),
            driver_id           UUID            REFERENCES drivers(id),
            assigned_at         TIMESTAMPTZ,
            assigned_by         VARCHAR(100),
            is_priority         BOOLEAN         NOT NULL DEFAULT false,
            internal_notes      TEXT,
            version             INTEGER         NOT NULL DEFAULT 1,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT now(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT now(),
            CONSTRAINT ck_orders_total CHECK (total = subtotal + delivery_fee - discount)
        );
    """)
    op.execute("CREATE INDEX ix_orders_customer_id   ON orders (customer_id);")
    op.execute("CREATE INDEX ix_orders_driver_id     ON orders (driver_id);")
    op.execute("CREATE INDEX ix_orders_status        ON orders (status);")
    op.execute("CREATE INDEX ix_orders_created_at    ON orders (created_at);")
    op.execute("CREATE INDEX ix_orders_delivery_date ON orders (delivery_date);")

    # ── Order status history ────────────────────────────────────────────
    op.execute("""
        CREATE TABLE order_status_history (
            id          SERIAL          PRIMARY KEY,
            order_id    UUID            NOT NULL REFERENCES orders(id),
            status      order_status    NOT NULL,
            notes       TEXT,
            changed_by  VARCHAR(100),
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT now()
        );
    """)
    op.execute(
        "CREATE INDEX ix_order_status_history_order_id "
        "ON order_status_history (order_id);"
    )

    # ── Driver trips ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE driver_trips (
            id              UUID            PRIMARY KEY,
            driver_id       UUID            NOT NULL REFERENCES drivers(id),
            order_id        UUID            NOT NULL REFERENCES orders(id),
            trip_type       trip_type       NOT NULL,
            started_at      TIMESTAMPTZ     NOT NULL,
            completed_at    TIMESTAMPTZ,
            distance_km     NUMERIC(8, 2),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT now(),
            CONSTRAINT ck_driver_trips_completed_after_start
                CHECK (completed_at IS NULL OR completed_at >= started_at)
        );
    """)
    op.execute(
        "CREATE INDEX ix_driver_trips_driver_started ON driver_trips (driver_id, started_at);"
    )
    op.execute(
        "CREATE INDEX ix_driver_trips_order_type ON driver_trips (order_id, trip_type);"
    )

    # ── Customer accounts (read model) ──────────────────────────────────
    op.execute("""
        CREATE TABLE customer_accounts (
            id          VARCHAR(100)    PRIMARY KEY,
            full_name   VARCHAR(200),
            email       VARCHAR(255),
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT now()
        );
    """)
    op.execute(
        "CREATE INDEX ix_customer_accounts_created_at ON customer_accounts (created_at);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS customer_accounts;")
    op.execute("DROP TABLE IF EXISTS driver_trips;")
    op.execute("DROP TABLE IF EXISTS order_status_history;")
    op.execute("DROP TABLE IF EXISTS orders;")
    op.execute("DROP TABLE IF EXISTS drivers;")
    op.execute("DROP TYPE IF EXISTS trip_type;")
    op.execute("DROP TYPE IF EXISTS driver_status;")
    op.execute("DROP TYPE IF EXISTS order_status;")
