from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from retail_orders.adapters.db.sqlalchemy.models import Base
from retail_orders.config import Settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # インメモリDBは接続ごとに別DBになるので接続を1本に固定する
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=True, bind=engine)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def session_factory_from_settings(settings: Settings) -> sessionmaker:
    engine = create_db_engine(settings.database_url, echo=settings.echo_sql)
    init_db(engine)
    return create_session_factory(engine)
