"""Tests for the preview generator, including the end-to-end OHLC scenario."""

from backend.core.formula_preview import generate_preview


class TestGeneratePreview:
    def test_caps_at_ten_rows(self):
        rows = [{"price": 10 + i, "quantity": 5 + i} for i in range(50)]
        preview = generate_preview("price * quantity", rows, ["price", "quantity"])
        assert preview.formula == "price * quantity"
        assert preview.column_name == ""
        assert len(preview.preview_values) == 10
        assert preview.preview_values[0] == 50
        assert preview.errors == []

    def test_fewer_rows_than_limit(self):
        rows = [{"price": 1, "quantity": 2}] * 3
        preview = generate_preview("price * quantity", rows, ["price", "quantity"])
        assert preview.preview_values == [2, 2, 2]

    def test_custom_limit(self):
        rows = [{"a": i} for i in range(20)]
        preview = generate_preview("a", rows, ["a"], limit=4)
        assert preview.preview_values == [0, 1, 2, 3]

    def test_invalid_formula_returns_validator_errors(self):
        rows = [{"price": 10, "quantity": 5}]
        preview = generate_preview("price * volume", rows, ["price", "quantity"])
        assert preview.preview_values == []
        assert preview.errors == ["Column 'volume' not found in dataset"]

    def test_parse_error_surfaces(self):
        preview = generate_preview("price *", [{"price": 1}], ["price"])
        assert preview.preview_values == []
        assert preview.errors[0].startswith("Formula parsing failed:")

    def test_ohlc_midpoint_scenario(self):
        columns = ["Open", "High", "Low", "Close"]
        rows = [
            {"Open": 9, "High": 10, "Low": 8, "Close": 9.5},
            {"Open": 10, "High": 12, "Low": 9, "Close": 11},
            {"Open": 5, "High": "bad", "Low": 5, "Close": 6},
        ]
        preview = generate_preview("(High + Low) / 2", rows, columns)
        assert preview.preview_values == [9, 10.5, None]
        assert preview.errors == ["Row 3: Invalid calculation result"]
