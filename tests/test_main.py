from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from paygate.main import create_app


def test_owned_store_tables_created_on_startup(settings, gateway, tmp_path):
    settings.DATABASE_URL = f"sqlite:///{tmp_path / 'owned.db'}"
    app = create_app(settings=settings, gateway=gateway)

    with TestClient(app):
        engine = app.state.session_factory.kw["bind"]
        assert {"customers", "payments"} <= set(inspect(engine).get_table_names())
    engine.dispose()


def test_supplied_store_is_left_alone(settings, gateway):
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    app = create_app(settings=settings, session_factory=sessionmaker(bind=engine), gateway=gateway)

    with TestClient(app):
        assert inspect(engine).get_table_names() == []
    engine.dispose()
