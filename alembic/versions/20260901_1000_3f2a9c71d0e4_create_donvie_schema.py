"""create_donvie_schema

Revision ID: 3f2a9c71d0e4
Revises:
Create Date: 2026-09-01 10:00:12.418530

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f2a9c71d0e4'
down_revision = None
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), 'sqlite')


def upgrade() -> None:
    op.create_table(
        'associations',
        sa.Column('id', ID_TYPE, primary_key=True, autoincrement=True),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('mission', sa.TEXT(), nullable=False),
        sa.Column('full_mission', sa.TEXT(), nullable=False),
        sa.Column('category', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=False),
        sa.Column('phone', sa.TEXT(), nullable=False),
        sa.Column('website', sa.TEXT(), nullable=True),
        sa.Column('address', sa.TEXT(), nullable=False),
        sa.Column('siret', sa.TEXT(), nullable=False),
        sa.Column('verified', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('donor_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_raised_cents', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('donor_count >= 0', name='ck_associations_donor_count_nonneg'),
        sa.CheckConstraint('total_raised_cents >= 0', name='ck_associations_total_raised_nonneg'),
    )
    op.create_index('idx_associations_category', 'associations', ['category'])

    op.create_table(
        'users',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('email', sa.TEXT(), nullable=True, unique=True),
        sa.Column('first_name', sa.TEXT(), nullable=True),
        sa.Column('last_name', sa.TEXT(), nullable=True),
        sa.Column('profile_image_url', sa.TEXT(), nullable=True),
        sa.Column('user_type', sa.TEXT(), nullable=True),
        sa.Column('association_id', ID_TYPE, sa.ForeignKey('associations.id'), nullable=True),
        sa.Column('password_hash', sa.TEXT(), nullable=True),
        sa.Column('auth_provider', sa.TEXT(), nullable=False, server_default='replit'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('association_id', name='uq_users_association'),
    )

    op.create_table(
        'donations',
        sa.Column('id', ID_TYPE, primary_key=True, autoincrement=True),
        sa.Column('association_id', ID_TYPE, sa.ForeignKey('associations.id'), nullable=False),
        sa.Column('donor_first_name', sa.TEXT(), nullable=False),
        sa.Column('donor_last_name', sa.TEXT(), nullable=False),
        sa.Column('donor_email', sa.TEXT(), nullable=False),
        sa.Column('donor_key', sa.TEXT(), nullable=False),
        sa.Column('donor_phone', sa.TEXT(), nullable=True),
        sa.Column('donor_address', sa.TEXT(), nullable=False),
        sa.Column('donor_postal_code', sa.TEXT(), nullable=False),
        sa.Column('donor_city', sa.TEXT(), nullable=False),
        sa.Column('donor_user_id', sa.TEXT(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('amount_cents', sa.BIGINT(), nullable=False),
        sa.Column('transaction_id', sa.TEXT(), nullable=False, unique=True),
        sa.Column('status', sa.TEXT(), nullable=False, server_default='completed'),
        sa.Column('receipt_token_hash', sa.TEXT(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount_cents > 0', name='ck_donations_amount_positive'),
    )
    op.create_index('idx_donations_association', 'donations', ['association_id'])
    op.create_index('idx_donations_association_donor', 'donations', ['association_id', 'donor_key'])
    op.create_index('idx_donations_donor_key', 'donations', ['donor_key'])
    op.create_index('idx_donations_donor_user', 'donations', ['donor_user_id'])

    op.create_table(
        'auth_sessions',
        sa.Column('token_hash', sa.TEXT(), primary_key=True),
        sa.Column('user_id', sa.TEXT(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('user_agent', sa.TEXT(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index('idx_auth_sessions_user', 'auth_sessions', ['user_id'])


def downgrade() -> None:
    op.drop_index('idx_auth_sessions_user', table_name='auth_sessions')
    op.drop_table('auth_sessions')
    op.drop_index('idx_donations_donor_user', table_name='donations')
    op.drop_index('idx_donations_donor_key', table_name='donations')
    op.drop_index('idx_donations_association_donor', table_name='donations')
    op.drop_index('idx_donations_association', table_name='donations')
    op.drop_table('donations')
    op.drop_table('users')
    op.drop_index('idx_associations_category', table_name='associations')
    op.drop_table('associations')
