"""Initial schema: users, sessions, content, forum, event registrations, audit.

Revision ID: 3f1a2b4c5d6e
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1a2b4c5d6e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(128), nullable=True),
        sa.Column("last_name", sa.String(128), nullable=True),
        sa.Column("student_id", sa.String(64), nullable=True),
        sa.Column("course", sa.String(255), nullable=True),
        sa.Column("year_of_study", sa.String(32), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("profile_image_url", sa.Text(), nullable=True),
        sa.Column("reset_token", sa.String(128), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_reset_token", "users", ["reset_token"])

    op.create_table(
        "sessions",
        sa.Column("sid", sa.String(128), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("sess", sa.Text(), nullable=False),
        sa.Column("expire", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("IDX_session_expire", "sessions", ["expire"])
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])

    op.create_table(
        "blog_posts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("idx_blog_posts_published_at", "blog_posts", ["published_at"])

    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("time", sa.String(64), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("attendee_count", sa.String(16), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_events_date", "events", ["date"])

    op.create_table(
        "gallery_images",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "discussions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_discussions_created_at", "discussions", ["created_at"])

    op.create_table(
        "discussion_replies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("discussion_id", sa.String(36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["discussion_id"], ["discussions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_discussion_replies_discussion", "discussion_replies", ["discussion_id"])

    op.create_table(
        "event_registrations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("registered_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_registrations_event_user"),
    )
    op.create_index("idx_event_registrations_user", "event_registrations", ["user_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("actor_user_id", sa.String(36), nullable=True),
        sa.Column("actor_user_email", sa.String(320), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_index("idx_event_registrations_user", table_name="event_registrations")
    op.drop_table("event_registrations")
    op.drop_index("idx_discussion_replies_discussion", table_name="discussion_replies")
    op.drop_table("discussion_replies")
    op.drop_index("idx_discussions_created_at", table_name="discussions")
    op.drop_table("discussions")
    op.drop_table("gallery_images")
    op.drop_index("idx_events_date", table_name="events")
    op.drop_table("events")
    op.drop_index("idx_blog_posts_published_at", table_name="blog_posts")
    op.drop_table("blog_posts")
    op.drop_index("ix_sessions_user_id", table_name="sessions")
    op.drop_index("IDX_session_expire", table_name="sessions")
    op.drop_table("sessions")
    op.drop_index("ix_users_reset_token", table_name="users")
    op.drop_table("users")
