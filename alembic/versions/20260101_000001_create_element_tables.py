"""create_element_tables

Revision ID: 20260101_000001
Revises:
Create Date: 2026-01-01 00:00:01

Create the fixed element schema: elements, per-locale rows, structures, relations,
the search index, the records of the shipped element types, field definitions and
layouts, tasks, and the shared content table. Field columns are added at runtime.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260101_000001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True)


def _element_fk(name: str = "id", *, primary_key: bool = False, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.Integer(),
        sa.ForeignKey("elements.id", ondelete="CASCADE"),
        primary_key=primary_key,
        nullable=nullable,
    )


def upgrade() -> None:
    """Create the element tables."""
    op.create_table(
        "elements",
        _id(),
        sa.Column("type", sa.String(150), nullable=False),
        sa.Column("enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("archived", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("date_created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("date_updated", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_elements_type", "elements", ["type"])

    op.create_table(
        "elements_i18n",
        _id(),
        _element_fk("element_id"),
        sa.Column("locale", sa.String(12), nullable=False),
        sa.Column("slug", sa.String(255), nullable=True),
        sa.Column("uri", sa.String(255), nullable=True),
        sa.Column("enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.UniqueConstraint("element_id", "locale", name="uq_elements_i18n_element_id_locale"),
        sa.UniqueConstraint("uri", "locale", name="uq_elements_i18n_uri_locale"),
    )
    op.create_index("ix_elements_i18n_slug_locale", "elements_i18n", ["slug", "locale"])

    op.create_table(
        "structures",
        _id(),
        sa.Column("max_levels", sa.Integer(), nullable=True),
    )
    op.create_table(
        "structureelements",
        _id(),
        sa.Column(
            "structure_id",
            sa.Integer(),
            sa.ForeignKey("structures.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _element_fk("element_id", nullable=True),
        sa.Column("root", sa.Integer(), nullable=True),
        sa.Column("lft", sa.Integer(), nullable=False),
        sa.Column("rgt", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "structure_id", "element_id", name="uq_structureelements_structure_id_element_id"
        ),
    )
    op.create_index("ix_structureelements_root_lft_rgt", "structureelements", ["root", "lft", "rgt"])

    op.create_table(
        "relations",
        _id(),
        sa.Column("field_id", sa.Integer(), nullable=False),
        _element_fk("source_id"),
        sa.Column("source_locale", sa.String(12), nullable=True),
        _element_fk("target_id"),
        sa.Column("sort_order", sa.Integer(), nullable=True),
    )
    op.create_index("ix_relations_field_id", "relations", ["field_id"])
    op.create_index("ix_relations_target_id", "relations", ["target_id"])
    op.create_index("ix_relations_source_id_field_id", "relations", ["source_id", "field_id"])

    op.create_table(
        "searchindex",
        sa.Column("element_id", sa.Integer(), primary_key=True),
        sa.Column("attribute", sa.String(25), primary_key=True),
        sa.Column("field_id", sa.Integer(), primary_key=True),
        sa.Column("locale", sa.String(12), primary_key=True),
        sa.Column("keywords", sa.Text(), nullable=False),
    )

    # Element type records
    op.create_table(
        "sections",
        _id(),
        sa.Column("handle", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column(
            "structure_id",
            sa.Integer(),
            sa.ForeignKey("structures.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("has_urls", sa.Boolean(), nullable=False),
        sa.Column("field_layout_id", sa.Integer(), nullable=True),
    )
    op.create_table(
        "sections_i18n",
        _id(),
        sa.Column(
            "section_id", sa.Integer(), sa.ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("locale", sa.String(12), nullable=False),
        sa.Column("enabled_by_default", sa.Boolean(), nullable=False),
        sa.Column("uri_format", sa.Text(), nullable=True),
        sa.Column("nested_uri_format", sa.Text(), nullable=True),
        sa.UniqueConstraint("section_id", "locale", name="uq_sections_i18n_section_id_locale"),
    )
    op.create_table(
        "entries",
        _element_fk(primary_key=True),
        sa.Column(
            "section_id", sa.Integer(), sa.ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "author_id", sa.Integer(), sa.ForeignKey("elements.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("post_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "categorygroups",
        _id(),
        sa.Column("handle", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "structure_id",
            sa.Integer(),
            sa.ForeignKey("structures.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("has_urls", sa.Boolean(), nullable=False),
        sa.Column("field_layout_id", sa.Integer(), nullable=True),
    )
    op.create_table(
        "categorygroups_i18n",
        _id(),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("categorygroups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("locale", sa.String(12), nullable=False),
        sa.Column("uri_format", sa.Text(), nullable=True),
        sa.Column("nested_uri_format", sa.Text(), nullable=True),
        sa.UniqueConstraint("group_id", "locale", name="uq_categorygroups_i18n_group_id_locale"),
    )
    op.create_table(
        "categories",
        _element_fk(primary_key=True),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("categorygroups.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )

    op.create_table(
        "users",
        _element_fk(primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("locked", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "matrixblocktypes",
        _id(),
        sa.Column("field_id", sa.Integer(), nullable=False),
        sa.Column("handle", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("field_layout_id", sa.Integer(), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.UniqueConstraint("field_id", "handle", name="uq_matrixblocktypes_field_id_handle"),
    )
    op.create_table(
        "matrixblocks",
        _element_fk(primary_key=True),
        _element_fk("owner_id"),
        sa.Column("owner_locale", sa.String(12), nullable=True),
        sa.Column("field_id", sa.Integer(), nullable=False),
        sa.Column(
            "type_id",
            sa.Integer(),
            sa.ForeignKey("matrixblocktypes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sort_order", sa.Integer(), nullable=True),
    )
    op.create_index("ix_matrixblocks_owner_id", "matrixblocks", ["owner_id"])

    # Fields, layouts and tasks
    op.create_table(
        "fields",
        _id(),
        sa.Column("handle", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("context", sa.String(64), nullable=False),
        sa.Column("type", sa.String(150), nullable=False),
        sa.Column("column_prefix", sa.String(64), nullable=True),
        sa.Column("translatable", sa.Boolean(), nullable=False),
        sa.Column("searchable", sa.Boolean(), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.UniqueConstraint("handle", "context", name="uq_fields_handle_context"),
    )
    op.create_table(
        "fieldlayouts",
        _id(),
        sa.Column("type", sa.String(150), nullable=True),
    )
    op.create_table(
        "fieldlayoutfields",
        _id(),
        sa.Column(
            "layout_id", sa.Integer(), sa.ForeignKey("fieldlayouts.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("field_id", sa.Integer(), sa.ForeignKey("fields.id", ondelete="CASCADE"), nullable=False),
        sa.Column("required", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.UniqueConstraint("layout_id", "field_id", name="uq_fieldlayoutfields_layout_id_field_id"),
    )
    op.create_table(
        "tasks",
        _id(),
        sa.Column("type", sa.String(150), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("params", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("date_created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("date_updated", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tasks_status", "tasks", ["status"])

    # Shared content table; field columns are added when fields are saved
    op.create_table(
        "content",
        _id(),
        _element_fk("element_id"),
        sa.Column("locale", sa.String(12), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("date_created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("date_updated", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("element_id", "locale", name="uq_content_element_id_locale"),
    )


def downgrade() -> None:
    """Drop the element tables."""
    for table in (
        "content",
        "tasks",
        "fieldlayoutfields",
        "fieldlayouts",
        "fields",
        "matrixblocks",
        "matrixblocktypes",
        "users",
        "categories",
        "categorygroups_i18n",
        "categorygroups",
        "entries",
        "sections_i18n",
        "sections",
        "searchindex",
        "relations",
        "structureelements",
        "structures",
        "elements_i18n",
        "elements",
    ):
        op.drop_table(table)
