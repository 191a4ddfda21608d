"""create room, player and chat_message tables

Revision ID: 5c0d7e91a2b4
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c0d7e91a2b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'room' not in existing_tables:
        op.create_table(
            'room',
            sa.Column('code', sa.String(length=6), primary_key=True),
            sa.Column('host_id', sa.String(length=36), nullable=True),
            sa.Column('max_players', sa.Integer(), nullable=False),
            sa.Column('state', sa.String(length=16), nullable=False),
            sa.Column('current_round', sa.Integer(), nullable=False),
            sa.Column('votes_json', sa.Text(), nullable=True),
            sa.Column('used_categories_json', sa.Text(), nullable=True),
            sa.Column('round_history', sa.Text(), nullable=True),
            sa.Column('show_imposter_role', sa.Boolean(), nullable=False),
            sa.Column('winner', sa.String(length=16), nullable=True),
            sa.Column('end_reason', sa.String(length=255), nullable=True),
            sa.Column('created_at', sa.Float(), nullable=True),
            sa.Column('started_at', sa.Float(), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False),
        )

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('room_code', sa.String(length=6), sa.ForeignKey('room.code'), nullable=False),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('seat', sa.Integer(), nullable=False),
            sa.Column('is_host', sa.Boolean(), nullable=False),
            sa.Column('is_imposter', sa.Boolean(), nullable=False),
            sa.Column('is_alive', sa.Boolean(), nullable=False),
            sa.Column('has_left', sa.Boolean(), nullable=False),
            sa.Column('has_voted', sa.Boolean(), nullable=False),
            sa.Column('has_given_clue', sa.Boolean(), nullable=False),
            sa.Column('word', sa.String(length=64), nullable=False),
            sa.Column('clues_json', sa.Text(), nullable=True),
        )
        op.create_index('ix_player_room_code', 'player', ['room_code'])

    if 'chat_message' not in existing_tables:
        op.create_table(
            'chat_message',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('room_code', sa.String(length=6), sa.ForeignKey('room.code'), nullable=False),
            sa.Column('player_id', sa.String(length=36), nullable=False),
            sa.Column('player_name', sa.String(length=64), nullable=False),
            sa.Column('text', sa.Text(), nullable=False),
            sa.Column('round', sa.Integer(), nullable=False),
            sa.Column('kind', sa.String(length=8), nullable=False),
            sa.Column('created_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_chat_message_room_code', 'chat_message', ['room_code'])


def downgrade():
    op.drop_index('ix_chat_message_room_code', table_name='chat_message')
    op.drop_table('chat_message')
    op.drop_index('ix_player_room_code', table_name='player')
    op.drop_table('player')
    op.drop_table('room')
