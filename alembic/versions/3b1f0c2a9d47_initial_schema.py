"""Initial schema: users, polls, votes, comments and share codes

Revision ID: 3b1f0c2a9d47
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '3b1f0c2a9d47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ROLE_ENUM = sa.Enum('user', 'moderator', 'admin', name='user_role')

CHECK_VOTE_RATE_LIMIT = """
CREATE OR REPLACE FUNCTION check_vote_rate_limit(poll_uuid uuid, user_ip text, user_uuid uuid DEFAULT NULL)
RETURNS boolean AS $$
DECLARE
    recent_votes integer;
BEGIN
    SELECT count(*) INTO recent_votes
    FROM votes v
    JOIN polls p ON p.id = v.poll_id
    LEFT JOIN users u ON u.id = v.user_id
    WHERE p.uuid = poll_uuid
      AND v.created_at > now() - interval '1 minute'
      AND (
        (user_uuid IS NOT NULL AND u.uuid = user_uuid)
        OR (user_uuid IS NULL AND v.ip_address = user_ip)
      );
    RETURN recent_votes < 10;
END;
$$ LANGUAGE plpgsql;
"""

GET_POLL_RESULTS = """
CREATE OR REPLACE FUNCTION get_poll_results(poll_uuid uuid)
RETURNS TABLE(option_uuid uuid, option_text varchar, vote_count bigint, percentage numeric) AS $$
    WITH counts AS (
        SELECT o.uuid, o.text, o.order_index, count(v.id) AS vote_count
        FROM poll_options o
        JOIN polls p ON p.id = o.poll_id
        LEFT JOIN votes v ON v.option_id = o.id
        WHERE p.uuid = poll_uuid
        GROUP BY o.uuid, o.text, o.order_index
    )
    SELECT uuid, text, vote_count,
           CASE WHEN sum(vote_count) OVER () = 0 THEN 0
                ELSE round(vote_count * 100.0 / sum(vote_count) OVER (), 1)
           END
    FROM counts
    ORDER BY order_index;
$$ LANGUAGE sql STABLE;
"""

POLL_STATS_VIEW = """
CREATE OR REPLACE VIEW poll_stats AS
SELECT p.uuid AS poll_uuid,
       p.title,
       (SELECT count(*) FROM poll_options o WHERE o.poll_id = p.id) AS option_count,
       (SELECT count(*) FROM votes v WHERE v.poll_id = p.id) AS total_votes,
       (SELECT count(DISTINCT coalesce(v.user_id::text, v.ip_address)) FROM votes v WHERE v.poll_id = p.id)
           AS unique_voters,
       (p.expires_at IS NOT NULL AND p.expires_at < now()) AS is_expired
FROM polls p;
"""


def base_columns(is_postgres: bool) -> list:
    id_default = sa.text("nextval('id_seq')") if is_postgres else None
    uuid_default = sa.text('gen_random_uuid()') if is_postgres else None
    return [
        sa.Column('id', sa.Integer(), server_default=id_default, nullable=False),
        sa.Column('uuid', sa.Uuid(), server_default=uuid_default, nullable=False),
    ]


def timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    """Upgrade schema - create every table; PostgreSQL also gets the helper functions and view."""
    is_postgres = op.get_bind().dialect.name == 'postgresql'

    if is_postgres:
        op.execute(sa.schema.CreateSequence(sa.Sequence('id_seq', start=1000)))

    op.create_table('users',
        *base_columns(is_postgres),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', ROLE_ENUM, server_default='user', nullable=False),
        timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('email'),
    )

    op.create_table('polls',
        *base_columns(is_postgres),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('allow_multiple_votes', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('allow_anonymous_votes', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        timestamp('created_at'),
        timestamp('updated_at'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )

    op.create_table('poll_options',
        *base_columns(is_postgres),
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('text', sa.String(length=200), nullable=False),
        sa.Column('order_index', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['poll_id'], ['polls.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )

    op.create_table('votes',
        *base_columns(is_postgres),
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('option_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        timestamp('created_at'),
        sa.ForeignKeyConstraint(['poll_id'], ['polls.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['option_id'], ['poll_options.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('poll_id', 'option_id', 'user_id', name='uq_votes_poll_option_user'),
    )
    op.create_index('ix_votes_poll_created', 'votes', ['poll_id', 'created_at'])

    op.create_table('comments',
        *base_columns(is_postgres),
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_visible', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('report_count', sa.Integer(), server_default='0', nullable=False),
        timestamp('created_at'),
        timestamp('updated_at'),
        sa.ForeignKeyConstraint(['poll_id'], ['polls.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['comments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )

    op.create_table('comment_reactions',
        *base_columns(is_postgres),
        sa.Column('comment_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('reaction_type', sa.String(length=10), nullable=False),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('comment_id', 'user_id', name='uq_comment_reactions_comment_user'),
    )

    op.create_table('comment_reports',
        *base_columns(is_postgres),
        sa.Column('comment_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=False),
        timestamp('created_at'),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('comment_id', 'user_id', name='uq_comment_reports_comment_user'),
    )

    op.create_table('poll_shares',
        *base_columns(is_postgres),
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('share_code', sa.String(length=16), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        timestamp('created_at'),
        sa.ForeignKeyConstraint(['poll_id'], ['polls.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_poll_shares_share_code', 'poll_shares', ['share_code'], unique=True)

    if is_postgres:
        op.execute(CHECK_VOTE_RATE_LIMIT)
        op.execute(GET_POLL_RESULTS)
        op.execute(POLL_STATS_VIEW)


def downgrade() -> None:
    """Downgrade schema - drop everything in reverse order."""
    is_postgres = op.get_bind().dialect.name == 'postgresql'

    if is_postgres:
        op.execute("DROP VIEW IF EXISTS poll_stats")
        op.execute("DROP FUNCTION IF EXISTS get_poll_results(uuid)")
        op.execute("DROP FUNCTION IF EXISTS check_vote_rate_limit(uuid, text, uuid)")

    op.drop_index('ix_poll_shares_share_code', table_name='poll_shares')
    op.drop_table('poll_shares')
    op.drop_table('comment_reports')
    op.drop_table('comment_reactions')
    op.drop_table('comments')
    op.drop_index('ix_votes_poll_created', table_name='votes')
    op.drop_table('votes')
    op.drop_table('poll_options')
    op.drop_table('polls')
    op.drop_table('users')

    if is_postgres:
        ROLE_ENUM.drop(op.get_bind(), checkfirst=True)
        op.execute(sa.schema.DropSequence(sa.Sequence('id_seq')))
