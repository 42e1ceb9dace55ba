import os

from stormrank import cli


class TestCli:
    def test_prints_tables(self, storm_csv, capsys):
        assert cli.main(["--csv", storm_csv, "--top", "3"]) == 0
        out = capsys.readouterr().out
        assert "Loaded 6 records, 5 distinct event types." in out
        assert "== Population health ==" in out
        assert "== Economic consequences ==" in out
        assert "Top 3 by Crop damage (US$)" in out

    def test_streamed_run_matches(self, storm_csv, capsys):
        cli.main(["--csv", storm_csv])
        whole = capsys.readouterr().out
        cli.main(["--csv", storm_csv, "--chunksize", "2"])
        assert capsys.readouterr().out == whole

    def test_charts_and_report(self, storm_csv, tmp_path, capsys):
        charts = tmp_path / "charts"
        report = tmp_path / "out" / "storms.docx"
        assert cli.main(["--csv", storm_csv, "--charts", str(charts), "--report", str(report)]) == 0
        assert os.path.exists(charts / "health.png")
        assert os.path.exists(charts / "economic.png")
        assert report.exists()

    def test_missing_dataset_reports_error(self, tmp_path, capsys):
        assert cli.main(["--csv", str(tmp_path / "missing.csv")]) == 1
        assert "Error: Dataset not found" in capsys.readouterr().out

    def test_header_only_dataset(self, tmp_path, capsys):
        from conftest import STORM_CSV_HEADER

        path = tmp_path / "empty.csv"
        path.write_text(STORM_CSV_HEADER)
        charts = tmp_path / "charts"
        report = tmp_path / "empty.docx"
        assert cli.main(["--csv", str(path), "--charts", str(charts), "--report", str(report)]) == 0
        out = capsys.readouterr().out
        assert "Loaded 0 records, 0 distinct event types." in out
        assert out.count("(no rows)") == 4
        assert (charts / "health.png").exists()
        assert report.exists()
