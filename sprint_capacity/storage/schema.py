"""
Esquema do banco de dados

Declarado uma única vez com SQLAlchemy e criado no dialeto escolhido pela URL
(SQLite local ou PostgreSQL). Datas de calendário são gravadas como texto
YYYY-MM-DD.
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    false,
    func,
    text,
)

metadata = MetaData()

teams = Table(
    "teams",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("logo_url", Text),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

team_members = Table(
    "team_members",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("role", Text, nullable=False),
    Column("default_capacity", Integer, nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

team_members_teams = Table(
    "team_members_teams",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
    Column("member_id", Integer, ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    UniqueConstraint("team_id", "member_id"),
    Index("idx_team_members_teams_team_id", "team_id"),
    Index("idx_team_members_teams_member_id", "member_id"),
)

sprint_templates = Table(
    "sprint_templates",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("year", Integer, nullable=False),
    Column("quarter", Integer, nullable=False),
    Column("sprint_number", Integer, nullable=False),
    Column("start_date", String(10), nullable=False),
    Column("end_date", String(10), nullable=False),
    Column("duration_weeks", Integer, nullable=False),
    Column("load_factor", Float, nullable=False, server_default=text("0.8")),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    UniqueConstraint("year", "quarter", "sprint_number"),
    CheckConstraint("quarter BETWEEN 1 AND 4", name="ck_sprint_templates_quarter"),
)

sprints = Table(
    "sprints",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
    Column("template_id", Integer, ForeignKey("sprint_templates.id", ondelete="SET NULL")),
    Column("name", Text, nullable=False),
    Column("year", Integer),
    Column("quarter", Integer),
    Column("start_date", String(10), nullable=False),
    Column("end_date", String(10), nullable=False),
    Column("is_current", Boolean, nullable=False, server_default=false()),
    Column("load_factor", Float, server_default=text("0.8")),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    Index("idx_sprints_team_id", "team_id"),
)

holidays = Table(
    "holidays",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("sprint_id", Integer, ForeignKey("sprints.id", ondelete="CASCADE"), nullable=False),
    Column("member_id", Integer, ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False),
    Column("date", String(10), nullable=False),
    UniqueConstraint("sprint_id", "member_id", "date"),
)

retro_items = Table(
    "retro_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("sprint_id", Integer, ForeignKey("sprints.id", ondelete="CASCADE"), nullable=False),
    Column("member_id", Integer, ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
    Column("type", String(32), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    CheckConstraint(
        "type IN ('lesson_learned', 'todo', 'what_went_well', 'what_went_wrong')",
        name="ck_retro_items_type",
    ),
    Index("idx_retro_items_team_id", "team_id"),
)
