"""Administrative CLI commands."""

import pytest
from click.testing import CliRunner

from donvie_api.cli import cli
from donvie_api.db.engine import build_engine, build_sessionmaker
from donvie_api.db.models import Association


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _associations(database_url: str) -> list[Association]:
    engine = build_engine(database_url)
    try:
        with build_sessionmaker(engine)() as db:
            rows = db.query(Association).order_by(Association.id).all()
            db.expunge_all()
            return rows
    finally:
        engine.dispose()


def test_init_db_and_seed(database_url):
    runner = CliRunner()

    result = runner.invoke(cli, ["--database-url", database_url, "init-db"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["--database-url", database_url, "seed"])
    assert result.exit_code == 0, result.output
    assert "Seeded 6 associations" in result.output

    result = runner.invoke(cli, ["--database-url", database_url, "seed"])
    assert "nothing seeded" in result.output

    assert len(_associations(database_url)) == 6


def test_verify_and_revoke(database_url):
    runner = CliRunner()
    runner.invoke(cli, ["--database-url", database_url, "seed"])
    first_id = _associations(database_url)[0].id

    result = runner.invoke(cli, ["--database-url", database_url, "verify", "--revoke", str(first_id)])
    assert result.exit_code == 0, result.output
    assert "not verified" in result.output
    assert _associations(database_url)[0].verified is False

    result = runner.invoke(cli, ["--database-url", database_url, "verify", str(first_id)])
    assert result.exit_code == 0, result.output
    assert _associations(database_url)[0].verified is True


def test_verify_unknown_association(database_url):
    runner = CliRunner()
    runner.invoke(cli, ["--database-url", database_url, "init-db"])

    result = runner.invoke(cli, ["--database-url", database_url, "verify", "999"])

    assert result.exit_code == 1
    assert "Association 999 not found" in result.output
