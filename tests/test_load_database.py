import load_database

from conftest import SAMPLE_ROWS


def test_missing_file_exits_non_zero(tmp_path, capsys):
    assert load_database.main([str(tmp_path / "missing.csv")]) == 1
    assert "CSV file not found" in capsys.readouterr().err


def test_import_reports_processed_rows(write_csv, engine, monkeypatch, capsys):
    from punctuality import load_data

    real_load = load_data.load_csv_to_db

    def load_into_test_engine(csv_path):
        return real_load(csv_path, engine=engine)

    monkeypatch.setattr(load_database, "load_csv_to_db", load_into_test_engine)

    assert load_database.main([str(write_csv(SAMPLE_ROWS))]) == 0
    assert "Total rows processed: 3" in capsys.readouterr().out
