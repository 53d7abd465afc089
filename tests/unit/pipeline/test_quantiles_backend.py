"""Tests for the quantiles pipeline backend."""

import logging
import math

import pytest

from sketchpipe.cli import build_parser
from sketchpipe.exceptions import ConfigurationError, InputFormatError
from sketchpipe.pipeline import get_backend
from sketchpipe.pipeline.quantiles import (
    DECILES,
    QuantilesBackend,
    QuantilesQuery,
    parse_double,
)
from sketchpipe.pipeline.report import Reporter
from sketchpipe.sketching import TDigest


def _numbered(lines):
    return list(enumerate(lines, start=1))


def _uniform_digest(stop: int = 20000) -> TDigest:
    digest = TDigest(compression=128)
    QuantilesBackend().update(digest, _numbered(str(i) for i in range(stop)), "data1.txt")
    return digest


def _report(query: QuantilesQuery, digest: TDigest) -> list[str]:
    reporter = Reporter()
    QuantilesBackend(query=query).query(digest, reporter)
    return reporter.lines


def _rows(lines: list[str]) -> list[list[str]]:
    return [line.split("\t") for line in lines]


class TestQuantilesUpdate:
    """Tests for streaming numeric lines into the digest."""

    def test_parses_numbers(self):
        digest = TDigest()

        QuantilesBackend().update(digest, _numbered(["1.5", " 2 ", "-3", "1e3"]), "data.txt")

        assert digest.item_count == 4
        assert digest.min == -3.0
        assert digest.max == 1000.0

    @pytest.mark.parametrize("blank", ["", "  "])
    def test_blank_line_is_malformed(self, blank):
        """A blank line is not a value and fails with its location."""
        with pytest.raises(InputFormatError, match="Malformed numeric value") as excinfo:
            QuantilesBackend().update(TDigest(), _numbered(["1", blank, "3"]), "data.txt")

        assert excinfo.value.line_number == 2
        assert excinfo.value.source == "data.txt"

    def test_malformed_number_names_line(self):
        """A non-numeric line raises with its location."""
        with pytest.raises(InputFormatError) as excinfo:
            QuantilesBackend().update(TDigest(), _numbered(["1", "2", "abc"]), "data.txt")

        assert excinfo.value.line_number == 3
        assert excinfo.value.line == "abc"
        assert excinfo.value.source == "data.txt"


class TestParseDouble:
    """Tests for parse_double()."""

    @pytest.mark.parametrize(
        "token,expected",
        [("+5", 5.0), (" 2.5 ", 2.5), (".5", 0.5), ("-1E-3", -0.001), ("Infinity", math.inf)],
    )
    def test_accepts_decimal_forms(self, token, expected):
        assert parse_double(token) == expected

    def test_accepts_nan(self):
        assert math.isnan(parse_double("NaN"))

    @pytest.mark.parametrize("token", ["", "  ", "1_000", "inf", "nan", "١٢", "0x10", "1e"])
    def test_rejects_non_decimal_forms(self, token):
        """Underscores, lowercase specials and non-ASCII digits are malformed."""
        with pytest.raises(ValueError, match="Malformed numeric value"):
            parse_double(token)


class TestDefaultQuery:
    """Tests for the default deciles report."""

    def test_reports_eleven_deciles(self):
        lines = _report(QuantilesQuery(), _uniform_digest())

        assert lines[0] == "Rank\tValue"
        rows = _rows(lines[1:])
        assert [rank for rank, _ in rows] == [f"{r:.1f}" for r in DECILES]
        assert rows[0][1] == "0.0"
        assert rows[-1][1] == "19999.0"
        assert float(rows[5][1]) == pytest.approx(10000, abs=600)

    def test_empty_sketch_reports_nothing(self, caplog):
        """An empty sketch logs a warning instead of reporting."""
        with caplog.at_level(logging.WARNING, logger="sketchpipe"):
            lines = _report(QuantilesQuery(), TDigest())

        assert lines == []
        assert "empty" in caplog.text


class TestRankQueries:
    """Tests for -r and -R."""

    def test_values_at_ranks_echo_rank_tokens(self):
        """Ranks are echoed as given; values have two decimals."""
        lines = _report(QuantilesQuery(ranks=("0", "0.5", "1")), _uniform_digest())

        rows = _rows(lines[1:])
        assert lines[0] == "Rank\tValue"
        assert rows[0] == ["0", "0.00"]
        assert rows[1][0] == "0.5"
        assert float(rows[1][1]) == pytest.approx(10000, abs=600)
        assert rows[2] == ["1", "19999.00"]

    def test_ranks_from_file(self, write_lines):
        path = write_lines("ranks.txt", ["1", "", "0"])

        lines = _report(QuantilesQuery(ranks_file=str(path)), _uniform_digest())

        assert lines == ["Rank\tValue", "1\t19999.00", "0\t0.00"]

    @pytest.mark.parametrize("rank", ["1.5", "-0.1"])
    def test_rank_out_of_range(self, rank):
        with pytest.raises(ConfigurationError, match=r"\[0, 1\]"):
            _report(QuantilesQuery(ranks=(rank,)), _uniform_digest(100))

    def test_malformed_rank(self):
        with pytest.raises(InputFormatError, match="Malformed numeric value"):
            _report(QuantilesQuery(ranks=("half",)), _uniform_digest(100))


class TestValueQueries:
    """Tests for -v and -V."""

    def test_list_values_are_sorted(self):
        """Values given on the command line are reported in ascending order."""
        lines = _report(QuantilesQuery(values=("15000", "5000")), _uniform_digest())

        rows = _rows(lines[1:])
        assert lines[0] == "Value\tRank"
        assert [value for value, _ in rows] == ["5000.00", "15000.00"]
        assert float(rows[0][1]) == pytest.approx(0.25, abs=0.02)
        assert float(rows[1][1]) == pytest.approx(0.75, abs=0.02)

    def test_file_values_keep_file_order(self, write_lines):
        """Values read from a file keep their order."""
        path = write_lines("values.txt", ["15000", "5000"])

        lines = _report(QuantilesQuery(values_file=str(path)), _uniform_digest())

        assert [row[0] for row in _rows(lines[1:])] == ["15000.00", "5000.00"]

    def test_values_outside_range(self):
        """Ranks are 0 below the minimum and 1 at or above the maximum."""
        lines = _report(QuantilesQuery(values=("-1", "20000")), _uniform_digest())

        assert lines[1:] == ["-1.00\t0.000000", "20000.00\t1.000000"]


class TestHistogramQueries:
    """Tests for -h and -lh."""

    def test_linear_histogram(self):
        """One row per bucket: lower boundary and estimated count."""
        lines = _report(QuantilesQuery(histogram=True), _uniform_digest())

        assert lines[0] == "Value\tFreq"
        rows = _rows(lines[1:])
        assert len(rows) == 10
        assert rows[0][0] == "0.000000"
        counts = [int(count.replace(",", "")) for _, count in rows]
        assert 20000 - 10 <= sum(counts) <= 20000
        for count in counts:
            assert count == pytest.approx(2000, abs=150)

    def test_bucket_count(self):
        lines = _report(QuantilesQuery(histogram=True, buckets=30), _uniform_digest())

        assert len(lines) == 31

    def test_single_bucket(self):
        """One bucket holds the whole stream."""
        lines = _report(QuantilesQuery(histogram=True, buckets=1), _uniform_digest())

        assert lines == ["Value\tFreq", "0.000000\t20,000"]

    def test_log_histogram(self):
        """Log boundaries grow geometrically after the zero substitute."""
        lines = _report(QuantilesQuery(log_histogram_zero_sub=1.0), _uniform_digest())

        rows = _rows(lines[1:])
        assert len(rows) == 10
        boundaries = [float(value.replace(",", "")) for value, _ in rows]
        assert boundaries[0] == 0.0
        ratios = [b / a for a, b in zip(boundaries[1:], boundaries[2:])]
        for ratio in ratios:
            assert ratio == pytest.approx(ratios[0], rel=1e-3)

    def test_both_histograms_are_separate_tables(self):
        query = QuantilesQuery(histogram=True, log_histogram_zero_sub=1.0, buckets=5)

        lines = _report(query, _uniform_digest())

        assert lines[0] == "Value\tFreq"
        assert lines[6] == ""
        assert lines[7] == "Value\tFreq"
        assert len(lines) == 13

    def test_log_histogram_of_negative_values(self):
        digest = TDigest()
        for value in (-5.0, 1.0, 10.0):
            digest.add(value)

        with pytest.raises(ConfigurationError, match="negative"):
            _report(QuantilesQuery(log_histogram_zero_sub=1.0), digest)

    def test_log_histogram_substitute_above_maximum(self):
        """A zero substitute at or above the maximum cannot give increasing splits."""
        digest = TDigest()
        for value in (0.0, 0.2, 0.5):
            digest.add(value)

        with pytest.raises(ConfigurationError, match="minimum below the maximum"):
            _report(QuantilesQuery(log_histogram_zero_sub=1.0, buckets=4), digest)

    def test_rejects_zero_buckets(self):
        with pytest.raises(ConfigurationError, match="must be positive"):
            QuantilesQuery(histogram=True, buckets=0)

    def test_plot_without_histogram_warns(self, caplog, tmp_path):
        """--plot needs a histogram query to draw anything."""
        query = QuantilesQuery(ranks=("0.5",), plot_path=str(tmp_path / "chart.png"))

        with caplog.at_level(logging.WARNING, logger="sketchpipe"):
            _report(query, _uniform_digest(100))

        assert "no chart written" in caplog.text
        assert not (tmp_path / "chart.png").exists()


class TestQuantilesLifecycle:
    """Tests for merge, describe and backend construction."""

    def test_merge_keeps_every_value(self):
        union = QuantilesBackend().merge([_uniform_digest(100), _uniform_digest(300)], k=64)

        assert union.compression == 64
        assert union.item_count == 400
        assert union.max == 299.0

    def test_describe(self):
        rows = dict(QuantilesBackend().describe(_uniform_digest(100)))

        assert rows["k"] == "128"
        assert rows["N"] == "100"
        assert rows["Min"] == "0.000000"
        assert rows["Max"] == "99.000000"

    def test_describe_empty(self):
        rows = dict(QuantilesBackend().describe(TDigest()))

        assert rows["N"] == "0"
        assert "Min" not in rows

    def test_options_map_to_query(self):
        """-h is the histogram flag; -lh takes the zero substitute."""
        args = build_parser().parse_args(
            ["quantiles", "-h", "-lh", "0.5", "-b", "30", "-r", "0.1", "0.9", "-V", "v.txt"]
        )

        backend = get_backend(args.command).from_args(args)

        assert isinstance(backend, QuantilesBackend)
        assert backend.query_options == QuantilesQuery(
            histogram=True,
            log_histogram_zero_sub=0.5,
            buckets=30,
            ranks=("0.1", "0.9"),
            values_file="v.txt",
        )
