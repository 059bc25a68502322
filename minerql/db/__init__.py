"""Optional statement executor; requires the ``sqlalchemy`` extra."""
from minerql.db.config import DatabaseConfig
from minerql.db.database import Database, QueryResult, bind_parameters

__all__ = ["Database", "DatabaseConfig", "QueryResult", "bind_parameters"]
