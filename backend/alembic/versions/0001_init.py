from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "loan_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("user_type", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("interest_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=False),
        sa.Column("min_amount", sa.BigInteger(), nullable=True),
        sa.Column("max_amount", sa.BigInteger(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("interest_rate >= 0 AND interest_rate <= 30", name="ck_loan_types_interest_rate"),
        sa.CheckConstraint("duration_months >= 1 AND duration_months <= 60", name="ck_loan_types_duration"),
    )
    op.create_index("ix_loan_types_user_type", "loan_types", ["user_type"], unique=False)
    op.create_index("ix_loan_types_category", "loan_types", ["category"], unique=False)
    op.create_index("ix_loan_types_is_active", "loan_types", ["is_active"], unique=False)

    op.create_table(
        "loans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("reference", sa.String(length=32), nullable=False),
        sa.Column("borrower_kind", sa.String(length=16), nullable=False),
        sa.Column("farmer_id", sa.String(length=64), nullable=True),
        sa.Column("staff_id", sa.String(length=64), nullable=True),
        sa.Column("borrower_name", sa.String(length=128), nullable=True),
        sa.Column("borrower_phone", sa.String(length=32), nullable=True),
        sa.Column("loan_type_id", sa.Integer(), sa.ForeignKey("loan_types.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("loan_type_name", sa.String(length=128), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("principal_amount", sa.BigInteger(), nullable=False),
        sa.Column("interest_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=False),
        sa.Column("interest_amount", sa.BigInteger(), nullable=False),
        sa.Column("total_repayment", sa.BigInteger(), nullable=False),
        sa.Column("monthly_payment", sa.BigInteger(), nullable=False),
        sa.Column("amount_paid", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("amount_outstanding", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="requested"),
        sa.Column("delivery_status", sa.String(length=16), nullable=True),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("pickup_date", sa.DateTime(), nullable=True),
        sa.Column("pickup_location", sa.String(length=256), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("disbursed_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("defaulted_at", sa.DateTime(), nullable=True),
        sa.Column("delivery_confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("delivered_by_staff_id", sa.String(length=64), nullable=True),
        sa.Column("delivery_notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.CheckConstraint(
            "(borrower_kind = 'farmer' AND farmer_id IS NOT NULL AND staff_id IS NULL) OR "
            "(borrower_kind = 'staff' AND staff_id IS NOT NULL AND farmer_id IS NULL)",
            name="ck_loans_single_borrower",
        ),
        sa.CheckConstraint("principal_amount > 0", name="ck_loans_principal_positive"),
        sa.CheckConstraint("amount_outstanding >= 0", name="ck_loans_outstanding_non_negative"),
        sa.CheckConstraint("amount_paid + amount_outstanding = total_repayment", name="ck_loans_repayment_balance"),
    )
    op.create_index("ix_loans_reference", "loans", ["reference"], unique=True)
    op.create_index("ix_loans_borrower_kind", "loans", ["borrower_kind"], unique=False)
    op.create_index("ix_loans_farmer_id", "loans", ["farmer_id"], unique=False)
    op.create_index("ix_loans_staff_id", "loans", ["staff_id"], unique=False)
    op.create_index("ix_loans_loan_type_id", "loans", ["loan_type_id"], unique=False)
    op.create_index("ix_loans_status", "loans", ["status"], unique=False)
    op.create_index("ix_loans_delivery_status", "loans", ["delivery_status"], unique=False)
    op.create_index("ix_loans_due_date", "loans", ["due_date"], unique=False)
    op.create_index("ix_loans_created_at", "loans", ["created_at"], unique=False)

    op.create_table(
        "loan_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("loan_id", sa.Integer(), sa.ForeignKey("loans.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.BigInteger(), nullable=False),
        sa.Column("total_price", sa.BigInteger(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_loan_items_quantity_positive"),
        sa.CheckConstraint("total_price = quantity * unit_price", name="ck_loan_items_total_price"),
    )
    op.create_index("ix_loan_items_loan_id", "loan_items", ["loan_id"], unique=False)

    op.create_table(
        "pickup_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("farmer_id", sa.String(length=64), nullable=False),
        sa.Column("farmer_name", sa.String(length=128), nullable=False),
        sa.Column("farmer_phone", sa.String(length=32), nullable=False),
        sa.Column("channel", sa.String(length=8), nullable=False, server_default="admin"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="requested"),
        sa.Column("request_notes", sa.Text(), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(), nullable=True),
        sa.Column("assigned_staff_id", sa.String(length=64), nullable=True),
        sa.Column("approved_notes", sa.Text(), nullable=True),
        sa.Column("staff_notes", sa.Text(), nullable=True),
        sa.Column("proposed_weight_kg", sa.Numeric(12, 3), nullable=True),
        sa.Column("proposed_price_per_kg", sa.BigInteger(), nullable=True),
        sa.Column("linked_purchase_id", sa.Integer(), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("linked_purchase_id", name="uq_pickup_requests_linked_purchase_id"),
    )
    op.create_index("ix_pickup_requests_farmer_id", "pickup_requests", ["farmer_id"], unique=False)
    op.create_index("ix_pickup_requests_status", "pickup_requests", ["status"], unique=False)
    op.create_index("ix_pickup_requests_created_at", "pickup_requests", ["created_at"], unique=False)

    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "pickup_request_id",
            sa.Integer(),
            sa.ForeignKey("pickup_requests.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("farmer_id", sa.String(length=64), nullable=False),
        sa.Column("farmer_name", sa.String(length=128), nullable=False),
        sa.Column("farmer_phone", sa.String(length=32), nullable=False),
        sa.Column("weight_kg", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit", sa.String(length=8), nullable=False, server_default="kg"),
        sa.Column("price_per_kg", sa.BigInteger(), nullable=False),
        sa.Column("total_amount", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(length=16), nullable=False, server_default="wallet"),
        sa.Column("payment_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("recorded_by", sa.String(length=64), nullable=True),
        sa.Column("location", sa.String(length=256), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("pickup_request_id", name="uq_purchases_pickup_request_id"),
    )
    op.create_index("ix_purchases_farmer_id", "purchases", ["farmer_id"], unique=False)
    op.create_index("ix_purchases_status", "purchases", ["status"], unique=False)
    op.create_index("ix_purchases_created_at", "purchases", ["created_at"], unique=False)

    op.create_table(
        "notification_intents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("recipient_phone", sa.String(length=32), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_notification_intents_event", "notification_intents", ["event"], unique=False)
    op.create_index("ix_notification_intents_status", "notification_intents", ["status"], unique=False)
    op.create_index(
        "ix_notification_intents_entity", "notification_intents", ["entity_type", "entity_id"], unique=False
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("actor", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)
    op.create_index("ix_audit_logs_actor", "audit_logs", ["actor"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)

def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("notification_intents")
    op.drop_table("purchases")
    op.drop_table("pickup_requests")
    op.drop_table("loan_items")
    op.drop_table("loans")
    op.drop_table("loan_types")
