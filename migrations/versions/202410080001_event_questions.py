"""Custom registration questions per event."""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202410080001"
down_revision = "202410010001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "event_questions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "short_text",
                "long_text",
                "select",
                "multiselect",
                "checkbox",
                name="question_type",
                create_constraint=True,
            ),
            nullable=False,
            server_default="short_text",
        ),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
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
        ),
    )
    op.create_index(
        "ix_event_questions_event_position",
        "event_questions",
        ["event_id", "position"],
    )


def downgrade() -> None:
    op.drop_index("ix_event_questions_event_position", table_name="event_questions")
    op.drop_table("event_questions")
    sa.Enum(name="question_type").drop(op.get_bind(), checkfirst=True)
