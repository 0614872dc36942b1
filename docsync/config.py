# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all configuration from environment
#   variables / .env file. Provides typed config objects
#   that are passed explicitly into every workflow component.
#
# CLASSES:
# --------
# - MongoConfig (dataclass)
#     uri: str           (default "mongodb://localhost:27017")
#     database: str      (default "source_db")
#
# - MySQLConfig (dataclass)
#     host/port/user/password/database (default localhost:3306, "migrated_db")
#
# - SqlServerConfig (dataclass)
#     host/port/user/password/database (default localhost:1433, "migrated_db")
#
# - SyncConfig (dataclass)
#     key_field: str              (default "_id")
#     sample_size: int            (default 100)   documents sampled for schema
#     validation_sample_size: int (default 10)
#     batch_size: int             (default 500)
#     state_dir: str              (default ".")   sync_state_<table>.json
#     output_dir: str             (default ".")   schema_<collection>.sql
#     max_depth: int              (default 10)
#     string_length: int          (default 255)
#
# - AppConfig (dataclass)
#     mongo, mysql, sqlserver, sync, dialect, collections, log_level
#
# FUNCTION:
# ---------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import List, Optional
from pathlib import Path

from dotenv import load_dotenv

from docsync.schema.dialect import Dialect


@dataclass
class MongoConfig:
    """MongoDB source configuration."""
    uri: str = "mongodb://localhost:27017"
    database: str = "source_db"


@dataclass
class MySQLConfig:
    """MySQL destination configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = "root"
    database: str = "migrated_db"


@dataclass
class SqlServerConfig:
    """SQL Server destination configuration."""
    host: str = "localhost"
    port: int = 1433
    user: str = "sa"
    password: str = ""
    database: str = "migrated_db"


@dataclass
class SyncConfig:
    """Knobs shared by schema analysis, loading, sync and validation."""
    key_field: str = "_id"
    sample_size: int = 100
    validation_sample_size: int = 10
    batch_size: int = 500
    state_dir: str = "."
    output_dir: str = "."
    max_depth: int = 10
    string_length: int = 255


@dataclass
class AppConfig:
    """Main application configuration."""
    mongo: MongoConfig = field(default_factory=MongoConfig)
    mysql: MySQLConfig = field(default_factory=MySQLConfig)
    sqlserver: SqlServerConfig = field(default_factory=SqlServerConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    dialect: Dialect = Dialect.MYSQL
    collections: List[str] = field(default_factory=list)
    log_level: str = "INFO"


# Singleton instance
_config_instance: Optional[AppConfig] = None


def _split_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_config(reload: bool = False) -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Args:
        reload: Discard the cached instance and read the environment again

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    # .env in the working directory wins over one next to the package
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

    mongo_config = MongoConfig(
        uri=os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        database=os.getenv("MONGO_DATABASE", "source_db"),
    )

    mysql_config = MySQLConfig(
        host=os.getenv("MYSQL_HOST", "localhost"),
        port=int(os.getenv("MYSQL_PORT", "3306")),
        user=os.getenv("MYSQL_USER", "root"),
        password=os.getenv("MYSQL_PASSWORD", "root"),
        database=os.getenv("MYSQL_DATABASE", "migrated_db"),
    )

    sqlserver_config = SqlServerConfig(
        host=os.getenv("SQLSERVER_HOST", "localhost"),
        port=int(os.getenv("SQLSERVER_PORT", "1433")),
        user=os.getenv("SQLSERVER_USER", "sa"),
        password=os.getenv("SQLSERVER_PASSWORD", ""),
        database=os.getenv("SQLSERVER_DATABASE", "migrated_db"),
    )

    sync_config = SyncConfig(
        key_field=os.getenv("SYNC_KEY_FIELD", "_id"),
        sample_size=int(os.getenv("SCHEMA_SAMPLE_SIZE", "100")),
        validation_sample_size=int(os.getenv("VALIDATION_SAMPLE_SIZE", "10")),
        batch_size=int(os.getenv("BATCH_SIZE", "500")),
        state_dir=os.getenv("STATE_DIR", "."),
        output_dir=os.getenv("OUTPUT_DIR", "."),
        max_depth=int(os.getenv("MAX_DEPTH", "10")),
        string_length=int(os.getenv("STRING_LENGTH", "255")),
    )

    _config_instance = AppConfig(
        mongo=mongo_config,
        mysql=mysql_config,
        sqlserver=sqlserver_config,
        sync=sync_config,
        dialect=Dialect.parse(os.getenv("DB_DIALECT", "mysql")),
        collections=_split_list(os.getenv("COLLECTIONS")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    return _config_instance
