"""Initial schema: users, listings, reservations, payments.

reservations_no_confirmed_overlap is the database-side guard against double
booking: two confirmed reservations of the same room may not have
intersecting daterange(check_in, check_out, '[)') values. A check-out day
equal to another check-in day is allowed.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_UPGRADE_SQL = """
CREATE EXTENSION IF NOT EXISTS btree_gist;

CREATE TABLE users (
    id              bigserial PRIMARY KEY,
    email           text NOT NULL,
    name            text NOT NULL,
    birth           date,
    email_verified  boolean NOT NULL DEFAULT false,
    image_url       text,
    created_at      timestamptz NOT NULL DEFAULT now(),
    updated_at      timestamptz NOT NULL DEFAULT now()
);
CREATE UNIQUE INDEX users_email_lower_uq ON users (lower(email));

CREATE TABLE locations (
    id              bigserial PRIMARY KEY,
    country         text NOT NULL DEFAULT '',
    city            text NOT NULL DEFAULT '',
    borough         text NOT NULL DEFAULT '',
    neighborhood    text NOT NULL DEFAULT '',
    detail_address  text NOT NULL DEFAULT '',
    latitude        double precision,
    longitude       double precision
);

CREATE TABLE rooms (
    id              bigserial PRIMARY KEY,
    host_id         bigint NOT NULL REFERENCES users (id),
    location_id     bigint REFERENCES locations (id),
    name            text NOT NULL,
    image_url       text,
    bed_num         integer NOT NULL DEFAULT 0,
    is_parking      boolean NOT NULL DEFAULT false,
    is_smoking      boolean NOT NULL DEFAULT false,
    created_at      timestamptz NOT NULL DEFAULT now()
);

CREATE TABLE bedrooms (
    id              bigserial PRIMARY KEY,
    room_id         bigint NOT NULL REFERENCES rooms (id) ON DELETE CASCADE
);

CREATE TABLE bathrooms (
    id              bigserial PRIMARY KEY,
    room_id         bigint NOT NULL REFERENCES rooms (id) ON DELETE CASCADE
);

CREATE TYPE reservation_status AS ENUM ('pending', 'confirmed', 'cancelled');

CREATE TABLE reservations (
    id              bigserial PRIMARY KEY,
    room_id         bigint NOT NULL REFERENCES rooms (id),
    user_id         bigint NOT NULL REFERENCES users (id),
    check_in        date NOT NULL,
    check_out       date NOT NULL,
    guest_count     integer NOT NULL CHECK (guest_count >= 1),
    total_cost      bigint NOT NULL CHECK (total_cost >= 0),
    status          reservation_status NOT NULL DEFAULT 'pending',
    receipt_id      text,
    cancel_reason   text,
    created_at      timestamptz NOT NULL DEFAULT now(),
    updated_at      timestamptz NOT NULL DEFAULT now(),
    CONSTRAINT reservations_dates_ordered CHECK (check_in < check_out),
    CONSTRAINT reservations_no_confirmed_overlap EXCLUDE USING gist (
        room_id WITH =,
        daterange(check_in, check_out, '[)') WITH &&
    ) WHERE (status = 'confirmed')
);
CREATE INDEX reservations_user_check_in_idx ON reservations (user_id, check_in DESC, id DESC);

CREATE TYPE payment_status AS ENUM ('unverified', 'verified');

CREATE TABLE payments (
    id              bigserial PRIMARY KEY,
    reservation_id  bigint NOT NULL UNIQUE REFERENCES reservations (id),
    receipt_id      text NOT NULL CONSTRAINT payments_receipt_id_key UNIQUE,
    status          payment_status NOT NULL DEFAULT 'unverified',
    created_at      timestamptz NOT NULL DEFAULT now()
);
"""

_DOWNGRADE_SQL = """
DROP TABLE IF EXISTS payments;
DROP TYPE IF EXISTS payment_status;
DROP TABLE IF EXISTS reservations;
DROP TYPE IF EXISTS reservation_status;
DROP TABLE IF EXISTS bathrooms;
DROP TABLE IF EXISTS bedrooms;
DROP TABLE IF EXISTS rooms;
DROP TABLE IF EXISTS locations;
DROP TABLE IF EXISTS users;
"""


def upgrade() -> None:
    # exec_driver_sql runs the multi-statement script as-is
    op.get_bind().exec_driver_sql(_UPGRADE_SQL)


def downgrade() -> None:
    op.get_bind().exec_driver_sql(_DOWNGRADE_SQL)
