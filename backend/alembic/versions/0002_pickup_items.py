from alembic import op
import sqlalchemy as sa

revision = "0002_pickup_items"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade():
    op.add_column("pickup_requests", sa.Column("assigned_staff_name", sa.String(length=128), nullable=True))
    op.add_column("pickup_requests", sa.Column("pickup_items", sa.JSON(), nullable=True))


def downgrade():
    op.drop_column("pickup_requests", "pickup_items")
    op.drop_column("pickup_requests", "assigned_staff_name")
