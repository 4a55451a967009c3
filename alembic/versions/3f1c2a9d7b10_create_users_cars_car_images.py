"""create users, cars and car_images tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:31.402118
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()")),
    )

    op.create_table(
        "cars",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_cars_user_id", "cars", ["user_id"])

    op.create_table(
        "car_images",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "car_id",
            sa.Uuid(),
            sa.ForeignKey("cars.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("public_id", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("content_type", sa.Text()),
        sa.Column("bytes", sa.Integer()),
        sa.Column("width", sa.Integer()),
        sa.Column("height", sa.Integer()),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()")),
    )
    op.create_index("ix_car_images_car_id", "car_images", ["car_id"])


def downgrade() -> None:
    op.drop_index("ix_car_images_car_id", table_name="car_images")
    op.drop_table("car_images")
    op.drop_index("ix_cars_user_id", table_name="cars")
    op.drop_table("cars")
    op.drop_table("users")
