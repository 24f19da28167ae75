import json
import logging

from sqlalchemy import inspect

from result_portal.database import build_engine, create_tables
from result_portal.logging_config import StructuredJsonFormatter


def test_create_tables_logs_on_db_channel(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="result_portal.db")
    engine = build_engine("sqlite:///" + str(tmp_path / "fresh.db"))

    create_tables(engine)

    assert "results" in inspect(engine).get_table_names()
    records = [r for r in caplog.records if r.name == "result_portal.db"]
    assert len(records) == 1
    entry = json.loads(StructuredJsonFormatter().format(records[0]))
    assert entry["channel"] == "db"
    assert entry["extra"] == {"dialect": "sqlite", "tables": ["results"]}
    engine.dispose()
