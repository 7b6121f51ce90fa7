from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(128), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime, nullable=True),
        sa.Column('avatar', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'shipments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tracking_number', sa.String(50), nullable=False),
        sa.Column('sender_name', sa.String(100), nullable=False),
        sa.Column('receiver_name', sa.String(100), nullable=False),
        sa.Column('origin', sa.String(200), nullable=False),
        sa.Column('destination', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('weight', sa.Float, nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('estimated_delivery', sa.DateTime, nullable=True),
        sa.Column('actual_delivery', sa.DateTime, nullable=True),
        # no FK: deleting a user leaves their shipments
        sa.Column('created_by', sa.Integer, nullable=False),
        sa.Column('updated_by', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_shipments_tracking_number', 'shipments', ['tracking_number'], unique=True)
    op.create_index('ix_shipments_status', 'shipments', ['status'])
    op.create_index('ix_shipments_created_at', 'shipments', ['created_at'])
    op.create_index('ix_shipments_created_by_status', 'shipments', ['created_by', 'status'])

    op.create_table(
        'shipment_status_history',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('shipment_id', sa.Integer, sa.ForeignKey('shipments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('changed_at', sa.DateTime, nullable=False),
        sa.Column('changed_by', sa.Integer, nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
    )
    op.create_index('ix_shipment_status_history_shipment_id', 'shipment_status_history', ['shipment_id'])

    op.create_table(
        'shipment_attachments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('shipment_id', sa.Integer, sa.ForeignKey('shipments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('original_name', sa.String(255), nullable=False),
        sa.Column('path', sa.String(500), nullable=False),
        sa.Column('mimetype', sa.String(100), nullable=False),
        sa.Column('size', sa.Integer, nullable=False),
        sa.Column('uploaded_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_shipment_attachments_shipment_id', 'shipment_attachments', ['shipment_id'])

def downgrade():
    op.drop_table('shipment_attachments')
    op.drop_table('shipment_status_history')
    op.drop_table('shipments')
    op.drop_table('users')
