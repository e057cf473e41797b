"""Initial schema: reference data, inspection tasks, results and acts

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Define enums
user_role = postgresql.ENUM(
    'specialist', 'coordinator', 'inspector',
    name='userrole',
    create_type=False,
)

inspection_type = postgresql.ENUM(
    'spring', 'winter', 'partial',
    name='inspectiontype',
    create_type=False,
)

task_priority = postgresql.ENUM(
    'urgent', 'high', 'normal', 'low',
    name='taskpriority',
    create_type=False,
)

task_status = postgresql.ENUM(
    'New', 'Pending', 'InProgress', 'OnReview', 'ForRevision', 'Approved', 'Canceled',
    name='taskstatus',
    create_type=False,
)

condition_status = postgresql.ENUM(
    'sound', 'satisfactory', 'unsatisfactory', 'emergency',
    name='conditionstatus',
    create_type=False,
)


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Create enums
    user_role.create(op.get_bind(), checkfirst=True)
    inspection_type.create(op.get_bind(), checkfirst=True)
    task_priority.create(op.get_bind(), checkfirst=True)
    task_status.create(op.get_bind(), checkfirst=True)
    condition_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="inspector"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "districts",
        _uuid_pk(),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
    )

    op.create_table(
        "maintenance_units",
        _uuid_pk(),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("district_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("districts.id"), nullable=False),
    )
    op.create_index("ix_maintenance_units_district_id", "maintenance_units", ["district_id"])

    op.create_table(
        "inspector_units",
        _uuid_pk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("maintenance_units.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.UniqueConstraint("user_id", "unit_id", name="uq_inspector_units_user_unit"),
    )
    op.create_index("ix_inspector_units_user_id", "inspector_units", ["user_id"])
    op.create_index("ix_inspector_units_unit_id", "inspector_units", ["unit_id"])

    op.create_table(
        "buildings",
        _uuid_pk(),
        sa.Column("address", sa.String(500), nullable=False, unique=True),
        sa.Column("construction_year", sa.Integer, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("photo", sa.String(500), nullable=True),
        sa.Column("district_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("districts.id"), nullable=False),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("maintenance_units.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_buildings_address", "buildings", ["address"])
    op.create_index("ix_buildings_district_id", "buildings", ["district_id"])
    op.create_index("ix_buildings_unit_id", "buildings", ["unit_id"])

    op.create_table(
        "element_catalog",
        _uuid_pk(),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("category", sa.String(100), nullable=True),
    )

    op.create_table(
        "checklists",
        _uuid_pk(),
        sa.Column("title", sa.String(255), nullable=False, unique=True),
        sa.Column("inspection_type", inspection_type, nullable=False, server_default="partial"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "checklist_elements",
        _uuid_pk(),
        sa.Column(
            "checklist_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("checklists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("element_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("element_catalog.id"), nullable=False),
        sa.Column("order_index", sa.Integer, nullable=True),
        sa.UniqueConstraint("checklist_id", "element_id", name="uq_checklist_elements_checklist_element"),
    )
    op.create_index("ix_checklist_elements_checklist_id", "checklist_elements", ["checklist_id"])

    op.create_table(
        "tasks",
        _uuid_pk(),
        sa.Column("building_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("buildings.id"), nullable=False),
        sa.Column("checklist_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("checklists.id"), nullable=False),
        sa.Column("inspector_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("priority", task_priority, nullable=False, server_default="normal"),
        sa.Column("status", task_status, nullable=False, server_default="New"),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tasks_building_id", "tasks", ["building_id"])
    op.create_index("ix_tasks_checklist_id", "tasks", ["checklist_id"])
    op.create_index("ix_tasks_inspector_id", "tasks", ["inspector_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])

    op.create_table(
        "inspection_results",
        _uuid_pk(),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "checklist_element_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("checklist_elements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("condition_status", condition_status, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("task_id", "checklist_element_id", name="uq_inspection_results_task_element"),
    )
    op.create_index("ix_inspection_results_task_id", "inspection_results", ["task_id"])

    op.create_table(
        "inspection_acts",
        _uuid_pk(),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("act_number", sa.String(50), nullable=False, unique=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="drafted"),
        sa.Column("conclusion", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document_path", sa.String(500), nullable=True),
        sa.Column("generation", sa.Integer, nullable=False, server_default="1"),
        sa.Column("document_generation", sa.Integer, nullable=True),
    )


def downgrade() -> None:
    # Drop tables
    op.drop_table("inspection_acts")
    op.drop_index("ix_inspection_results_task_id", table_name="inspection_results")
    op.drop_table("inspection_results")
    op.drop_index("ix_tasks_status", table_name="tasks")
    op.drop_index("ix_tasks_inspector_id", table_name="tasks")
    op.drop_index("ix_tasks_checklist_id", table_name="tasks")
    op.drop_index("ix_tasks_building_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_checklist_elements_checklist_id", table_name="checklist_elements")
    op.drop_table("checklist_elements")
    op.drop_table("checklists")
    op.drop_table("element_catalog")
    op.drop_index("ix_buildings_unit_id", table_name="buildings")
    op.drop_index("ix_buildings_district_id", table_name="buildings")
    op.drop_index("ix_buildings_address", table_name="buildings")
    op.drop_table("buildings")
    op.drop_index("ix_inspector_units_unit_id", table_name="inspector_units")
    op.drop_index("ix_inspector_units_user_id", table_name="inspector_units")
    op.drop_table("inspector_units")
    op.drop_index("ix_maintenance_units_district_id", table_name="maintenance_units")
    op.drop_table("maintenance_units")
    op.drop_table("districts")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    # Drop enums
    condition_status.drop(op.get_bind(), checkfirst=True)
    task_status.drop(op.get_bind(), checkfirst=True)
    task_priority.drop(op.get_bind(), checkfirst=True)
    inspection_type.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
