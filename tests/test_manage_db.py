from scripts.manage_db import main
from src.services.analysis_repository import AnalysisRepository
from src.services.blob_store import BlobStore
from src.services.database_session import DatabaseSession


def run_cli(url, *args):
    return main(["--database-url", url, *args])


def test_init_stats_export_and_reset(tmp_path, capsys):
    url = f"sqlite:///{tmp_path/'cli.db'}"

    assert run_cli(url, "init") == 0
    assert "Created new database" in capsys.readouterr().out
    assert run_cli(url, "init") == 0
    assert "already exists" in capsys.readouterr().out

    session = DatabaseSession(blob_store=BlobStore(database_url=url))
    session.initialize()
    AnalysisRepository(session).add_job("Backend Engineer", "Python")
    session.close()

    assert run_cli(url, "stats") == 0
    out = capsys.readouterr().out
    assert "jobs: 1" in out
    assert "analyses: 0" in out

    assert run_cli(url, "export", "--output-dir", str(tmp_path / "exports")) == 0
    exported = list((tmp_path / "exports").glob("resume_analyzer_*.db"))
    assert len(exported) == 1

    assert run_cli(url, "reset") == 1
    assert run_cli(url, "reset", "--yes") == 0
    assert "Stored database deleted" in capsys.readouterr().out
    assert run_cli(url, "stats") == 1


def test_import_round_trip_and_invalid_file(tmp_path, capsys):
    source_url = f"sqlite:///{tmp_path/'source.db'}"
    target_url = f"sqlite:///{tmp_path/'target.db'}"
    run_cli(source_url, "init")
    session = DatabaseSession(blob_store=BlobStore(database_url=source_url))
    session.initialize()
    AnalysisRepository(session).add_job("Imported", "Carried over")
    exported = session.export_to(tmp_path / "exports")
    session.close()

    assert run_cli(target_url, "import", str(exported)) == 0

    bogus = tmp_path / "bogus.db"
    bogus.write_bytes(b"definitely not sqlite" * 50)
    assert run_cli(target_url, "import", str(bogus)) == 2
    assert "not a valid database file" in capsys.readouterr().err

    target = DatabaseSession(blob_store=BlobStore(database_url=target_url))
    target.initialize()
    assert [job.title for job in AnalysisRepository(target).get_all_jobs()] == ["Imported"]
    target.close()


def test_export_without_database_fails(tmp_path, capsys):
    url = f"sqlite:///{tmp_path/'empty.db'}"

    assert run_cli(url, "export", "--output-dir", str(tmp_path)) == 1
    assert "run 'init' or 'import' first" in capsys.readouterr().err
