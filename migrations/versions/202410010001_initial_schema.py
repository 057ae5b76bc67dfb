"""Initial database schema for the registration service."""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202410010001"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_ROW = sa.text("status <> 'cancelled'")


def _timestamp_columns():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
            server_onupdate=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("registration_blurb", sa.Text(), nullable=True),
        *_timestamp_columns(),
        sa.CheckConstraint("capacity > 0", name="ck_events_capacity_positive"),
    )

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("dept", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "confirmed",
                "waitlisted",
                "cancelled",
                name="registration_status",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("attended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("checkin_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checkin_code", sa.String(length=64), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint("checkin_code", name="uq_registrations_checkin_code"),
        sa.CheckConstraint(
            "attended = false OR checkin_at IS NOT NULL",
            name="ck_registrations_attended_has_timestamp",
        ),
    )
    op.create_index(
        "uq_registrations_active_email",
        "registrations",
        ["event_id", "email"],
        unique=True,
        postgresql_where=ACTIVE_ROW,
        sqlite_where=ACTIVE_ROW,
    )
    op.create_index(
        "ix_registrations_event_status",
        "registrations",
        ["event_id", "status"],
    )

    op.create_table(
        "expected_registrants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("dept", sa.String(length=255), nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "event_id", "email", name="uq_expected_registrants_event_email"
        ),
    )


def downgrade() -> None:
    op.drop_table("expected_registrants")
    op.drop_index("ix_registrations_event_status", table_name="registrations")
    op.drop_index("uq_registrations_active_email", table_name="registrations")
    op.drop_table("registrations")
    op.drop_table("events")
    sa.Enum(name="registration_status").drop(op.get_bind(), checkfirst=True)
