"""Initial schema - users, businesses, agents and their conversation data

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

Baseline for the tables otherwise created by init_db(). Deleting a business
cascades to its agents; deleting an agent cascades to memories, messages and
generated content.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Businesses table
    op.create_table(
        'businesses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('industry', sa.String(255), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('target_audience', sa.Text, nullable=True),
        sa.Column('brand_tone', sa.String(100), nullable=False, server_default='professional'),
        sa.Column('logo_url', sa.String(1000), nullable=True),
        sa.Column('social_links', sa.Text, nullable=True),
        sa.Column('brand_colors', sa.Text, nullable=True),
        sa.Column('goals', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_businesses_user_id', 'businesses', ['user_id'])

    # Agents table
    op.create_table(
        'agents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('agent_name', sa.String(255), nullable=False),
        sa.Column('memory', sa.Text, nullable=False, server_default=''),
        sa.Column('persona', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_agents_business_id', 'agents', ['business_id'])

    # Agent memories (profile snapshots and future retrieved context)
    op.create_table(
        'agent_memories',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('agent_id', sa.String(36), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('embedding_json', sa.Text, nullable=True),
        sa.Column('metadata_json', sa.Text, nullable=True),
        sa.Column('tag', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_agent_memories_agent_id', 'agent_memories', ['agent_id'])
    op.create_index('ix_agent_memories_tag', 'agent_memories', ['tag'])
    op.create_index('ix_agent_memories_created_at', 'agent_memories', ['created_at'])
    op.create_index('ix_agent_memories_agent_tag', 'agent_memories', ['agent_id', 'tag'])
    op.create_index('ix_agent_memories_agent_created', 'agent_memories', ['agent_id', 'created_at'])

    # Messages table
    op.create_table(
        'messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('agent_id', sa.String(36), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_messages_agent_id', 'messages', ['agent_id'])
    op.create_index('ix_messages_agent_created', 'messages', ['agent_id', 'created_at'])

    # Generated content table
    op.create_table(
        'contents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('agent_id', sa.String(36), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content_type', sa.String(20), nullable=False),
        sa.Column('data_json', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_contents_agent_id', 'contents', ['agent_id'])
    op.create_index('ix_contents_content_type', 'contents', ['content_type'])


def downgrade() -> None:
    op.drop_table('contents')
    op.drop_table('messages')
    op.drop_table('agent_memories')
    op.drop_table('agents')
    op.drop_table('businesses')
    op.drop_table('users')
