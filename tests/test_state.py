import pytest
from sqlalchemy import create_engine, text

from archbench.benchmark.state import OutputDirectory, TableTruncator
from archbench.errors import ResetFailure


def test_path_for_run_and_warm_up(tmp_path):
    outputs = OutputDirectory(tmp_path)

    assert outputs.path_for("EDAPrimer", "query1", 3) == tmp_path / "EDAPrimer_query1_3.txt"
    assert outputs.path_for("EDAPrimer", "query2") == tmp_path / "EDAPrimer_query2_cache.txt"


def test_clear_removes_files_and_directories(tmp_path):
    (tmp_path / "a.txt").write_text("a,1\n")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "b.txt").write_text("b,2\n")

    OutputDirectory(tmp_path).clear()

    assert list(tmp_path.iterdir()) == []


def test_clear_missing_directory(tmp_path):
    OutputDirectory(tmp_path / "missing").clear()


def test_clear_archives_when_configured(tmp_path):
    query_dir = tmp_path / "query"
    archive_dir = tmp_path / "archive"
    query_dir.mkdir()
    (query_dir / "EDAPrimer_query1_0.txt").write_text("a,1\n")

    OutputDirectory(query_dir, archive_dir=archive_dir).clear()

    assert list(query_dir.iterdir()) == []
    assert (archive_dir / "EDAPrimer_query1_0.txt").read_text() == "a,1\n"


def test_archive_replaces_older_copy(tmp_path):
    query_dir = tmp_path / "query"
    archive_dir = tmp_path / "archive"
    query_dir.mkdir()
    archive_dir.mkdir()
    (archive_dir / "EDAPrimer_query1_cache.txt").write_text("old,1\n")
    (query_dir / "EDAPrimer_query1_cache.txt").write_text("new,2\n")

    OutputDirectory(query_dir, archive_dir=archive_dir).reset()

    assert (archive_dir / "EDAPrimer_query1_cache.txt").read_text() == "new,2\n"


def test_scoped_cleanup_clears_after_error(tmp_path):
    outputs = OutputDirectory(tmp_path / "query")

    with pytest.raises(RuntimeError):
        with outputs.scoped_cleanup():
            (tmp_path / "query" / "partial.txt").write_text("a,1\n")
            raise RuntimeError("parse failed")

    assert list((tmp_path / "query").iterdir()) == []


@pytest.fixture
def trip_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'trips.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE trip (id INTEGER, delay INTEGER)"))
        conn.execute(text("CREATE TABLE tripchangetop10 (id INTEGER)"))
        conn.execute(text("INSERT INTO trip VALUES (1, 5), (2, 7)"))
        conn.execute(text("INSERT INTO tripchangetop10 VALUES (1)"))
    yield engine
    engine.dispose()


def _count(engine, table):
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()


def test_truncate_tables(trip_engine):
    truncator = TableTruncator(tables=["trip", "tripchangetop10"], engine=trip_engine)

    truncator.reset()

    assert _count(trip_engine, "trip") == 0
    assert _count(trip_engine, "tripchangetop10") == 0


def test_truncate_from_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'state.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE trip (id INTEGER)"))
        conn.execute(text("INSERT INTO trip VALUES (1)"))

    truncator = TableTruncator(url, ["trip"])
    truncator.reset()
    truncator.dispose()

    assert _count(engine, "trip") == 0
    engine.dispose()


def test_truncate_missing_table_fails(trip_engine):
    truncator = TableTruncator(tables=["missing"], engine=trip_engine)

    with pytest.raises(ResetFailure, match="missing"):
        truncator.reset()


def test_truncator_needs_a_database():
    with pytest.raises(ValueError):
        TableTruncator(tables=["trip"])
