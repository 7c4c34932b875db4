from hrportal.db.session import create_db_engine, create_session_factory, init_db

__all__ = ["create_db_engine", "create_session_factory", "init_db"]
