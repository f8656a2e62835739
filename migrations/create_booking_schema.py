"""
Create the booking schema on PostgreSQL and install the overlap exclusion.

Tables that do not exist yet are created from the ORM models. For a
``bookings`` table that predates the exclusion constraint this adds:
- btree_gist extension
- time_range generated column (half-open tstzrange)
- bookings_no_overlap exclusion over active statuses

Fails if existing active bookings already overlap; cancel one of each
overlapping pair first.

Run with: python migrations/create_booking_schema.py [downgrade]
"""

import sys

from sqlalchemy import text

from pestbook import models  # noqa: F401
from pestbook.database import Base, engine
from pestbook.models import ACTIVE_STATUS_SQL, OVERLAP_CONSTRAINT_NAME

TIME_RANGE_SQL = """
    ALTER TABLE bookings
    ADD COLUMN time_range TSTZRANGE
    GENERATED ALWAYS AS (tstzrange(starts_at, ends_at, '[)')) STORED
"""

EXCLUSION_SQL = f"""
    ALTER TABLE bookings
    ADD CONSTRAINT {OVERLAP_CONSTRAINT_NAME}
    EXCLUDE USING GIST (time_range WITH &&)
    WHERE (status IN {ACTIVE_STATUS_SQL})
"""


def upgrade():
    if engine.dialect.name != "postgresql":
        print(f"ℹ️  {engine.dialect.name} database: tables and triggers come from create_all")
        Base.metadata.create_all(bind=engine, checkfirst=True)
        return

    Base.metadata.create_all(bind=engine, checkfirst=True)
    print("✅ Tables present")

    with engine.connect() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        print("✅ btree_gist extension ready")

        result = conn.execute(
            text("""
            SELECT column_name
            FROM information_schema.columns
            WHERE table_name = 'bookings'
            AND column_name = 'time_range'
        """)
        )
        if result.first() is None:
            conn.execute(text(TIME_RANGE_SQL))
            print("✅ Added time_range column")
        else:
            print("ℹ️  time_range column already exists")

        result = conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": OVERLAP_CONSTRAINT_NAME},
        )
        if result.first() is None:
            conn.execute(text(EXCLUSION_SQL))
            print(f"✅ Added {OVERLAP_CONSTRAINT_NAME} exclusion constraint")
        else:
            print(f"ℹ️  {OVERLAP_CONSTRAINT_NAME} already exists")

        conn.commit()
        print("\n✅ Migration completed successfully!")


def downgrade():
    """Drop the exclusion and the generated column; tables are kept"""
    if engine.dialect.name != "postgresql":
        print("ℹ️  Nothing to downgrade outside PostgreSQL")
        return

    with engine.connect() as conn:
        conn.execute(
            text(f"ALTER TABLE bookings DROP CONSTRAINT IF EXISTS {OVERLAP_CONSTRAINT_NAME}")
        )
        conn.execute(text("ALTER TABLE bookings DROP COLUMN IF EXISTS time_range"))
        conn.commit()
        print("✅ Downgrade completed")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "downgrade":
        downgrade()
    else:
        upgrade()
