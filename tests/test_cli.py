"""Tests for the geo-counts command line interface."""

from unittest.mock import patch

import pandas as pd
from click.testing import CliRunner

from geo_counts.cli import cli
from geo_counts.counts import write_table


def _write_counts(path, data=None):
    table = pd.DataFrame(
        data or {"GSM1": [10, 30, 50], "GSM2": [20, 60, 100]},
        index=pd.Index(["A", "B", "C"], name="gene_symbol"),
    )
    write_table(table, path)
    return path


class TestNormalizeCommand:

    def test_default_output_path(self, tmp_path):
        counts = _write_counts(tmp_path / "GSE1_aggregated_counts.tsv")
        result = CliRunner().invoke(cli, ["normalize", str(counts)])

        assert result.exit_code == 0, result.output
        output = tmp_path / "GSE1_aggregated_counts_normalized.tsv"
        assert output.is_file()
        normalized = pd.read_csv(output, sep="\t", index_col=0)
        assert list(normalized.index) == ["A", "B", "C"]
        assert "3 genes x 2 samples" in result.output

    def test_cpm_to_explicit_output(self, tmp_path):
        counts = _write_counts(tmp_path / "counts.tsv")
        output = tmp_path / "out" / "cpm.tsv"
        result = CliRunner().invoke(
            cli, ["normalize", str(counts), "--method", "cpm", "--output", str(output)]
        )
        assert result.exit_code == 0, result.output
        assert output.is_file()

    def test_failure_exits_non_zero(self, tmp_path):
        counts = _write_counts(
            tmp_path / "counts.tsv", {"GSM1": [0, 5, 1], "GSM2": [3, 0, 0]}
        )
        result = CliRunner().invoke(cli, ["normalize", str(counts)])
        assert result.exit_code == 1
        assert "non-zero" in result.output

    def test_non_numeric_column(self, tmp_path):
        counts = tmp_path / "counts.tsv"
        counts.write_text("gene_symbol\tGSM1\tGSM2\nA\t10\tlow\nB\t20\thigh\n")
        result = CliRunner().invoke(cli, ["normalize", str(counts)])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not isinstance(result.exception, ValueError)

    def test_empty_file(self, tmp_path):
        counts = tmp_path / "counts.tsv"
        counts.write_text("")
        result = CliRunner().invoke(cli, ["normalize", str(counts)])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_rejects_bad_offset(self, tmp_path):
        counts = _write_counts(tmp_path / "counts.tsv")
        result = CliRunner().invoke(cli, ["normalize", str(counts), "--offset", "0"])
        assert result.exit_code == 2


class TestSummarizeCommand:

    def test_prints_summary(self, tmp_path):
        counts = _write_counts(tmp_path / "counts.tsv")
        result = CliRunner().invoke(cli, ["summarize", str(counts)])
        assert result.exit_code == 0, result.output
        assert "3 genes x 2 samples" in result.output
        assert "library_size" in result.output

    def test_writes_summary(self, tmp_path):
        counts = _write_counts(tmp_path / "counts.tsv")
        output = tmp_path / "summary.tsv"
        result = CliRunner().invoke(cli, ["summarize", str(counts), "--output", str(output)])
        assert result.exit_code == 0, result.output
        summary = pd.read_csv(output, sep="\t", index_col=0)
        assert summary.loc["GSM2", "library_size"] == 180


class TestRunCommand:

    def test_bad_accession(self, tmp_path):
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["run", "--accession", "XYZ"])
        assert result.exit_code == 1
        assert "Not a GEO series accession" in result.output

    def test_reports_artifacts(self, tmp_path):
        artifacts = {"aggregated": tmp_path / "GSE1_aggregated_counts.tsv"}
        with patch("geo_counts.cli.run_geo_pipeline", return_value=artifacts) as run:
            result = CliRunner().invoke(
                cli,
                ["run", "--accession", "GSE1", "--expected-samples", "4",
                 "--output-dir", str(tmp_path), "--method", "cpm"],
            )

        assert result.exit_code == 0, result.output
        config = run.call_args.args[0]
        assert config.expected_samples == 4
        assert config.normalization_method == "cpm"
        assert config.output_dir == tmp_path
        assert "GSE1_aggregated_counts.tsv" in result.output
