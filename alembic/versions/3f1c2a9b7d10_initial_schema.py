"""initial schema: users, halls, bookings, approval and audit logs

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-17 10:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f1c2a9b7d10"
down_revision = None
branch_labels = None
depends_on = None

STATUSES = ("Pending", "Approved", "Rejected")


def upgrade():
    approval_status = sa.Enum(*STATUSES, name="approval_status")

    op.create_table(
        "users",
        sa.Column("uid", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum("staff", "admin_ic", "coordinator", "head_ops", name="user_role"),
                  nullable=False),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "halls",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("floor", sa.String(50), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amenities", sa.JSON(), nullable=False),
        sa.Column("imageUrl", sa.String(500), nullable=True),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("hallId", sa.String(64), sa.ForeignKey("halls.id"), nullable=False),
        sa.Column("hallName", sa.String(200), nullable=False),
        sa.Column("department", sa.String(200), nullable=False),
        sa.Column("meetingType", sa.String(200), nullable=False),
        sa.Column("requiredDate", sa.Date(), nullable=False),
        sa.Column("startTime", sa.Time(), nullable=False),
        sa.Column("duration", sa.String(20), nullable=False),
        sa.Column("audioSystem", sa.Boolean(), nullable=False),
        sa.Column("projector", sa.Boolean(), nullable=False),
        sa.Column("airConditioning", sa.String(20), nullable=False),
        sa.Column("participants", sa.Integer(), nullable=False),
        sa.Column("coordinatorName", sa.String(150), nullable=False),
        sa.Column("bookedBy", sa.String(150), nullable=False),
        sa.Column("otherRequirements", sa.Text(), nullable=False),
        sa.Column("userId", sa.String(64), sa.ForeignKey("users.uid"), nullable=False),
        sa.Column("submittedAt", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("status", approval_status, nullable=False),
        sa.Column("stage1_status", approval_status, nullable=False),
        sa.Column("stage1_approved_by", sa.String(150), nullable=True),
        sa.Column("stage2_status", approval_status, nullable=False),
        sa.Column("stage2_approved_by", sa.String(150), nullable=True),
        sa.Column("stage3_status", approval_status, nullable=False),
        sa.Column("stage3_approved_by", sa.String(150), nullable=True),
    )
    op.create_index("ix_bookings_hallId", "bookings", ["hallId"])
    op.create_index("ix_bookings_requiredDate", "bookings", ["requiredDate"])
    op.create_index("ix_bookings_userId", "bookings", ["userId"])
    op.create_index("ix_bookings_status", "bookings", ["status"])

    op.create_table(
        "approval_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bookingId", sa.String(64), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("stage", sa.Integer(), nullable=False),
        sa.Column("decision", sa.Enum(*STATUSES, name="approval_decision"), nullable=False),
        sa.Column("approverId", sa.String(64), sa.ForeignKey("users.uid"), nullable=False),
        sa.Column("approverName", sa.String(150), nullable=False),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_approval_logs_id", "approval_logs", ["id"])
    op.create_index("ix_approval_logs_bookingId", "approval_logs", ["bookingId"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("userId", sa.String(64), sa.ForeignKey("users.uid"), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entityType", sa.String(100), nullable=False),
        sa.Column("entityId", sa.String(64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("approval_logs")
    op.drop_table("bookings")
    op.drop_table("halls")
    op.drop_table("users")
    sa.Enum(name="approval_decision").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="approval_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
