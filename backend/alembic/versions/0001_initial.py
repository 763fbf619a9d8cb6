"""initial schema: directory tables and the notification store

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    club_role = postgresql.ENUM("CL", "VP", "CM", "STU", name="club_role")
    notification_type = postgresql.ENUM("email", "event", "membership", "report", name="notification_type")

    club_role_col = postgresql.ENUM("CL", "VP", "CM", "STU", name="club_role", create_type=False)
    notification_type_col = postgresql.ENUM(
        "email", "event", "membership", "report", name="notification_type", create_type=False
    )

    bind = op.get_bind()
    club_role.create(bind, checkfirst=True)
    notification_type.create(bind, checkfirst=True)

    op.create_table(
        "persons",
        sa.Column("username", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "clubs",
        sa.Column("club_name", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("member_max", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("club_name", sa.String(length=128), nullable=False),
        sa.Column("role", club_role_col, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["username"], ["persons.username"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["club_name"], ["clubs.club_name"], ondelete="CASCADE"),
        sa.UniqueConstraint("username", "club_name", name="uq_memberships_username_club"),
    )
    op.create_index(op.f("ix_memberships_username"), "memberships", ["username"], unique=False)
    op.create_index(op.f("ix_memberships_club_name"), "memberships", ["club_name"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("sender_username", sa.String(length=64), nullable=False),
        sa.Column("recipient_username", sa.String(length=64), nullable=True),
        sa.Column("club_name", sa.String(length=128), nullable=True),
        sa.Column("type", notification_type_col, nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reply_to", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["sender_username"], ["persons.username"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipient_username"], ["persons.username"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["club_name"], ["clubs.club_name"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reply_to"], ["notifications.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_notifications_sender_username"), "notifications", ["sender_username"], unique=False)
    op.create_index(
        op.f("ix_notifications_recipient_username"), "notifications", ["recipient_username"], unique=False
    )
    op.create_index(op.f("ix_notifications_club_name"), "notifications", ["club_name"], unique=False)
    op.create_index("ix_notifications_reply_to_created_at", "notifications", ["reply_to", "created_at"], unique=False)

    op.create_table(
        "notification_recipients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("notification_id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["notification_id"], ["notifications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["username"], ["persons.username"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "notification_id", "username", name="uq_notification_recipients_notification_user"
        ),
    )
    op.create_index(
        op.f("ix_notification_recipients_notification_id"),
        "notification_recipients",
        ["notification_id"],
        unique=False,
    )
    op.create_index(
        "ix_notification_recipients_username_is_read",
        "notification_recipients",
        ["username", "is_read"],
        unique=False,
    )
    op.execute("ALTER TABLE persons ALTER COLUMN is_admin DROP DEFAULT")
    op.execute("ALTER TABLE notification_recipients ALTER COLUMN is_read DROP DEFAULT")


def downgrade() -> None:
    op.drop_index("ix_notification_recipients_username_is_read", table_name="notification_recipients")
    op.drop_index(op.f("ix_notification_recipients_notification_id"), table_name="notification_recipients")
    op.drop_table("notification_recipients")
    op.drop_index("ix_notifications_reply_to_created_at", table_name="notifications")
    op.drop_index(op.f("ix_notifications_club_name"), table_name="notifications")
    op.drop_index(op.f("ix_notifications_recipient_username"), table_name="notifications")
    op.drop_index(op.f("ix_notifications_sender_username"), table_name="notifications")
    op.drop_table("notifications")
    op.drop_index(op.f("ix_memberships_club_name"), table_name="memberships")
    op.drop_index(op.f("ix_memberships_username"), table_name="memberships")
    op.drop_table("memberships")
    op.drop_table("clubs")
    op.drop_table("persons")

    bind = op.get_bind()
    postgresql.ENUM(name="notification_type").drop(bind, checkfirst=True)
    postgresql.ENUM(name="club_role").drop(bind, checkfirst=True)
