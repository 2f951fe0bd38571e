from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "aerich" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSONB NOT NULL
);
CREATE TABLE IF NOT EXISTS "users" (
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "id" SERIAL NOT NULL PRIMARY KEY,
    "email" VARCHAR(255) NOT NULL UNIQUE,
    "name" VARCHAR(50) NOT NULL,
    "hashed_password" VARCHAR(255) NOT NULL,
    "role" VARCHAR(20) NOT NULL  DEFAULT 'attendee',
    "avatar" VARCHAR(500) NOT NULL  DEFAULT '',
    "bio" VARCHAR(500) NOT NULL  DEFAULT '',
    "phone" VARCHAR(30) NOT NULL  DEFAULT '',
    "is_verified" BOOL NOT NULL  DEFAULT False,
    "last_login" TIMESTAMPTZ
);
CREATE INDEX IF NOT EXISTS "idx_users_email_133a6f" ON "users" ("email");
CREATE INDEX IF NOT EXISTS "idx_users_role_2c8e1d" ON "users" ("role");
COMMENT ON COLUMN "users"."role" IS 'ATTENDEE: attendee\nORGANIZER: organizer\nADMIN: admin';
CREATE TABLE IF NOT EXISTS "events" (
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "id" SERIAL NOT NULL PRIMARY KEY,
    "title" VARCHAR(100) NOT NULL,
    "description" TEXT NOT NULL,
    "category" VARCHAR(50) NOT NULL,
    "date" DATE NOT NULL,
    "time" TIMETZ NOT NULL,
    "location" VARCHAR(200) NOT NULL,
    "image" VARCHAR(500) NOT NULL  DEFAULT '',
    "ticket_limit" INT NOT NULL,
    "tickets_sold" INT NOT NULL  DEFAULT 0,
    "price" DOUBLE PRECISION NOT NULL  DEFAULT 0,
    "organizer_name" VARCHAR(50) NOT NULL  DEFAULT '',
    "status" VARCHAR(20) NOT NULL  DEFAULT 'active',
    "tags" JSONB NOT NULL,
    "featured" BOOL NOT NULL  DEFAULT False,
    "registration_deadline" TIMESTAMPTZ,
    "max_attendees_per_user" INT NOT NULL  DEFAULT 1,
    "refund_policy" VARCHAR(500),
    "contact_email" VARCHAR(255),
    "contact_phone" VARCHAR(30),
    "venue_details" VARCHAR(1000),
    "requirements" VARCHAR(1000),
    "organizer_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_events_title_44f4d6" ON "events" ("title");
CREATE INDEX IF NOT EXISTS "idx_events_categor_6e4b9a" ON "events" ("category");
CREATE INDEX IF NOT EXISTS "idx_events_date_8f5b3b" ON "events" ("date");
CREATE INDEX IF NOT EXISTS "idx_events_status_b1d7c2" ON "events" ("status");
CREATE INDEX IF NOT EXISTS "idx_events_date_5a0f31" ON "events" ("date", "status");
CREATE TABLE IF NOT EXISTS "event_attendees" (
    "event_id" INT NOT NULL REFERENCES "events" ("id") ON DELETE CASCADE,
    "user_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE
);
CREATE UNIQUE INDEX IF NOT EXISTS "uidx_event_atten_event_i_1f2d3c" ON "event_attendees" ("event_id", "user_id");"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        DROP TABLE IF EXISTS "event_attendees";
        DROP TABLE IF EXISTS "events";
        DROP TABLE IF EXISTS "users";"""
