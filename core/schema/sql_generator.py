# ============================================================================
# CLAUDE CONTEXT - PYDANTIC TO SQL GENERATOR
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - DDL generation from Pydantic models
# PURPOSE: Generate the studio schema (enums, tables, indexes) from models
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: PydanticToSQL
# DEPENDENCIES: pydantic, psycopg
# ============================================================================
"""
Pydantic to PostgreSQL Schema Generator.

Generates PostgreSQL DDL statements from Pydantic models.
Pydantic models are the SINGLE SOURCE OF TRUTH for schema.

Model Metadata Convention:
    Models define SQL metadata via ClassVar attributes:
    - __sql_table__: Table name
    - __sql_schema__: Schema name
    - __sql_primary_key__: Primary key column(s) - string or list
    - __sql_foreign_keys__: Dict of {column: "schema.table(column)"}
    - __sql_indexes__: List of index definitions
    - __sql_serial_columns__: Columns that should be SERIAL
    - __sql_unique__: List of column groups that must be unique

Usage:
    generator = PydanticToSQL(schema_name="studio")
    statements = generator.generate_all()
    for stmt in statements:
        cursor.execute(stmt)
"""

import re
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Tuple, Type, Any, Union, get_args, get_origin
from pydantic import BaseModel
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined
from psycopg import sql
from annotated_types import MaxLen

from core.schema.ddl_utils import IndexBuilder, TriggerBuilder, SchemaUtils

logger = logging.getLogger(__name__)


class PydanticToSQL:
    """
    Convert Pydantic models to PostgreSQL DDL statements.

    Analyzes Pydantic models with __sql_* metadata and generates
    corresponding PostgreSQL CREATE TABLE statements.
    """

    TYPE_MAP = {
        str: "VARCHAR",
        int: "INTEGER",
        float: "DOUBLE PRECISION",
        bool: "BOOLEAN",
        datetime: "TIMESTAMPTZ",
        date: "DATE",
        Decimal: "NUMERIC(12,2)",
        dict: "JSONB",
        Dict: "JSONB",
        list: "JSONB",
        List: "JSONB",
        tuple: "JSONB",
        Tuple: "JSONB",
    }

    def __init__(self, schema_name: str = "studio", destructive: bool = False):
        """
        Initialize the generator.

        Args:
            schema_name: Default PostgreSQL schema name
            destructive: If True, use DROP+CREATE for enums (data loss risk).
                        If False (default), use CREATE IF NOT EXISTS (safe).
        """
        self.schema_name = schema_name
        self.destructive = destructive
        self.enums: Dict[str, Type[Enum]] = {}

    # =========================================================================
    # METADATA EXTRACTION
    # =========================================================================

    @staticmethod
    def get_model_metadata(model: Type[BaseModel]) -> Dict[str, Any]:
        """
        Extract SQL DDL metadata from a Pydantic model.

        Looks for __sql_* attributes (which Python mangles to _ClassName__sql_*).
        """
        def get_attr(name: str, default=None):
            mangled = f"_{model.__name__}__{name}"
            return getattr(model, mangled, getattr(model, f"__{name}", default))

        metadata = {
            "table": get_attr("sql_table__"),
            "schema": get_attr("sql_schema__", "studio"),
            "primary_key": get_attr("sql_primary_key__", []),
            "foreign_keys": get_attr("sql_foreign_keys__", {}),
            "indexes": get_attr("sql_indexes__", []),
            "serial_columns": get_attr("sql_serial_columns__", []),
            "unique": get_attr("sql_unique__", []),
        }

        if isinstance(metadata["primary_key"], str):
            metadata["primary_key"] = [metadata["primary_key"]]

        return metadata

    # =========================================================================
    # TYPE CONVERSION
    # =========================================================================

    @staticmethod
    def enum_type_name(enum_class: Type[Enum]) -> str:
        """CamelCase enum class name to snake_case PostgreSQL type name."""
        return re.sub(r'(?<!^)(?=[A-Z])', '_', enum_class.__name__).lower()

    def python_type_to_sql(self, field_type: Type, field_info: FieldInfo) -> str:
        """
        Convert Python type to PostgreSQL type.

        Args:
            field_type: Python type from Pydantic model
            field_info: Pydantic field information

        Returns:
            PostgreSQL type string
        """
        actual_type = field_type
        origin = get_origin(field_type)

        # Unwrap Optional
        if origin is Union:
            args = [a for a in get_args(field_type) if a is not type(None)]
            actual_type = args[0]
            origin = get_origin(actual_type)

        if origin in (dict, list, tuple):
            return "JSONB"

        if actual_type == str:
            max_length = None
            for constraint in field_info.metadata or []:
                if isinstance(constraint, MaxLen):
                    max_length = constraint.max_length
                    break
            if max_length:
                return f"VARCHAR({max_length})"
            return "VARCHAR"

        if isinstance(actual_type, type) and issubclass(actual_type, Enum):
            enum_name = self.enum_type_name(actual_type)
            self.enums[enum_name] = actual_type
            return enum_name

        sql_type = self.TYPE_MAP.get(actual_type)
        if sql_type:
            return sql_type

        return "JSONB"

    # =========================================================================
    # ENUM GENERATION
    # =========================================================================

    def generate_enum(self, enum_class: Type[Enum], schema: str) -> List[sql.Composed]:
        """
        Generate PostgreSQL ENUM type DDL.

        Behavior depends on self.destructive:
        - destructive=True: DROP CASCADE + CREATE (destroys dependent columns!)
        - destructive=False: CREATE inside a DO block, skipped if it exists
        """
        enum_name = self.enum_type_name(enum_class)
        self.enums[enum_name] = enum_class
        values_list = [member.value for member in enum_class]
        values_sql = sql.SQL(', ').join(sql.Literal(v) for v in values_list)

        if self.destructive:
            return [
                sql.SQL("DROP TYPE IF EXISTS {}.{} CASCADE").format(
                    sql.Identifier(schema),
                    sql.Identifier(enum_name)
                ),
                sql.SQL("CREATE TYPE {}.{} AS ENUM ({})").format(
                    sql.Identifier(schema),
                    sql.Identifier(enum_name),
                    values_sql
                )
            ]

        values_str = ', '.join(f"'{v}'" for v in values_list)
        do_block = f"""
DO $$
BEGIN
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = '{enum_name}' AND typnamespace = (SELECT oid FROM pg_namespace WHERE nspname = '{schema}')) THEN
        CREATE TYPE "{schema}"."{enum_name}" AS ENUM ({values_str});
    END IF;
END$$
"""
        return [sql.SQL(do_block)]

    # =========================================================================
    # TABLE GENERATION
    # =========================================================================

    def _column_default(self, field_name: str, field_info: FieldInfo,
                        sql_type_str: str, schema_name: str) -> List[sql.Composable]:
        default = field_info.default
        if default is not None and default is not PydanticUndefined:
            if isinstance(default, Enum):
                return [
                    sql.SQL(" DEFAULT "),
                    sql.Literal(default.value),
                    sql.SQL("::"),
                    sql.Identifier(schema_name),
                    sql.SQL("."),
                    sql.Identifier(sql_type_str),
                ]
            if isinstance(default, bool):
                return [sql.SQL(" DEFAULT "), sql.SQL("true" if default else "false")]
            if isinstance(default, (str, int, float, Decimal)):
                return [sql.SQL(" DEFAULT "), sql.Literal(default)]

        if field_info.default_factory is not None:
            if field_name in ("created_at", "updated_at"):
                return [sql.SQL(" DEFAULT NOW()")]
            if sql_type_str == "JSONB":
                annotation = field_info.annotation
                if get_origin(annotation) in (list, tuple):
                    return [sql.SQL(" DEFAULT '[]'")]
                return [sql.SQL(" DEFAULT '{}'")]

        return []

    def generate_table(self, model: Type[BaseModel]) -> sql.Composed:
        """
        Generate CREATE TABLE DDL from a Pydantic model.

        Args:
            model: Pydantic model with __sql_* metadata

        Returns:
            sql.Composed CREATE TABLE statement
        """
        meta = self.get_model_metadata(model)
        table_name = meta["table"]
        schema_name = meta["schema"]
        primary_key = meta["primary_key"]
        foreign_keys = meta["foreign_keys"]
        serial_columns = meta["serial_columns"]

        if not table_name:
            raise ValueError(f"Model {model.__name__} missing __sql_table__ attribute")

        logger.debug(f"Generating table {schema_name}.{table_name} from {model.__name__}")

        columns = []
        constraints = []

        for field_name, field_info in model.model_fields.items():
            field_type = field_info.annotation
            sql_type_str = self.python_type_to_sql(field_type, field_info)

            is_optional = (
                get_origin(field_type) is Union and type(None) in get_args(field_type)
            )

            if field_name in serial_columns:
                sql_type_str = "SERIAL"

            column_parts: List[sql.Composable] = [sql.Identifier(field_name), sql.SQL(" ")]

            if sql_type_str in self.enums:
                column_parts.extend([
                    sql.Identifier(schema_name),
                    sql.SQL("."),
                    sql.Identifier(sql_type_str)
                ])
            else:
                column_parts.append(sql.SQL(sql_type_str))

            # NOT NULL (skip SERIAL and PK columns)
            if not is_optional and field_name not in primary_key and sql_type_str != "SERIAL":
                column_parts.append(sql.SQL(" NOT NULL"))

            if sql_type_str != "SERIAL":
                column_parts.extend(
                    self._column_default(field_name, field_info, sql_type_str, schema_name)
                )

            columns.append(sql.SQL("").join(column_parts))

        if primary_key:
            constraints.append(
                sql.SQL("PRIMARY KEY ({})").format(
                    sql.SQL(", ").join(sql.Identifier(col) for col in primary_key)
                )
            )

        for fk_column, fk_reference in foreign_keys.items():
            match = re.match(r"(\w+)\.(\w+)\((\w+)\)", fk_reference)
            if match:
                ref_schema, ref_table, ref_column = match.groups()
                constraints.append(
                    sql.SQL("FOREIGN KEY ({}) REFERENCES {}.{} ({}) ON DELETE CASCADE").format(
                        sql.Identifier(fk_column),
                        sql.Identifier(ref_schema),
                        sql.Identifier(ref_table),
                        sql.Identifier(ref_column)
                    )
                )

        return sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
            sql.Identifier(schema_name),
            sql.Identifier(table_name),
            sql.SQL(", ").join(columns + constraints)
        )

    # =========================================================================
    # INDEX GENERATION
    # =========================================================================

    def generate_indexes(self, model: Type[BaseModel]) -> List[sql.Composed]:
        """
        Generate CREATE INDEX statements from __sql_indexes__ and __sql_unique__.

        Index tuples are (name, columns) or (name, columns, partial_where).
        """
        meta = self.get_model_metadata(model)
        table_name = meta["table"]
        schema_name = meta["schema"]

        result = []

        for idx_def in meta["indexes"]:
            name = idx_def[0]
            columns = idx_def[1] if len(idx_def) > 1 else []
            partial_where = idx_def[2] if len(idx_def) > 2 else None
            if not columns or not name:
                continue
            result.append(IndexBuilder.btree(
                schema_name, table_name, columns,
                name=name,
                partial_where=partial_where,
            ))

        for unique_columns in meta["unique"]:
            result.append(IndexBuilder.unique(schema_name, table_name, unique_columns))

        return result

    # =========================================================================
    # COMPLETE SCHEMA GENERATION
    # =========================================================================

    def generate_drop_schema(self) -> sql.Composed:
        """
        Generate DROP SCHEMA CASCADE statement.

        WARNING: This destroys ALL data in the schema!
        Only use for development rebuild.
        """
        return sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(
            sql.Identifier(self.schema_name)
        )

    def generate_all(self) -> List[sql.Composed]:
        """
        Generate complete DDL for the studio schema.

        Tables are emitted parents first so foreign keys resolve.
        """
        from core.contracts import JobStatus, WorkflowStage, JobType, UserRole, ServiceType
        from core.models import (
            Worker,
            PackageTemplate,
            PackageService,
            ClientPackageAssignment,
            Job,
            UsageRecord,
            Notification,
            NotificationKind,
            JobComment,
            JobEvent,
            EventType,
            EventStatus,
        )

        statements = []

        statements.append(SchemaUtils.create_schema(self.schema_name))
        statements.append(SchemaUtils.set_search_path(self.schema_name))

        for enum_class in (
            JobStatus, WorkflowStage, JobType, UserRole, ServiceType,
            NotificationKind, EventType, EventStatus,
        ):
            statements.extend(self.generate_enum(enum_class, self.schema_name))

        models = [
            Worker,
            PackageTemplate,
            PackageService,
            ClientPackageAssignment,
            Job,
            UsageRecord,
            Notification,
            JobComment,
            JobEvent,
        ]
        for model in models:
            statements.append(self.generate_table(model))
        for model in models:
            statements.extend(self.generate_indexes(model))

        statements.append(TriggerBuilder.updated_at_function(self.schema_name))
        statements.extend(TriggerBuilder.updated_at_trigger(self.schema_name, "jobs"))

        logger.info(f"Generated {len(statements)} DDL statements for schema {self.schema_name}")
        return statements

    def execute(self, conn, dry_run: bool = False) -> int:
        """
        Execute all DDL statements.

        Args:
            conn: psycopg connection
            dry_run: If True, log statements but don't execute

        Returns:
            Number of statements executed
        """
        statements = self.generate_all()

        if dry_run:
            for stmt in statements:
                logger.info(f"[DRY RUN] {stmt.as_string(conn)[:100]}...")
            return len(statements)

        with conn.cursor() as cur:
            for stmt in statements:
                cur.execute(stmt)

        logger.info(f"Executed {len(statements)} DDL statements")
        return len(statements)

    async def execute_async(self, conn, dry_run: bool = False) -> int:
        """Async variant of execute() for an AsyncConnection (app startup)."""
        statements = self.generate_all()

        if dry_run:
            for stmt in statements:
                logger.info(f"[DRY RUN] {stmt.as_string(conn)[:100]}...")
            return len(statements)

        async with conn.cursor() as cur:
            for stmt in statements:
                await cur.execute(stmt)

        logger.info(f"Executed {len(statements)} DDL statements")
        return len(statements)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ['PydanticToSQL']
