from statement_recon.parsers.csv_reader import read_rows


class TestReadRows:
    """Tests for the lenient statement tokenizer."""

    def test_simple_rows(self):
        assert read_rows("a,b\n1,2") == [["a", "b"], ["1", "2"]]

    def test_quoted_delimiter(self):
        assert read_rows('x,"a, b",y') == [["x", "a, b", "y"]]

    def test_doubled_quote_is_literal(self):
        assert read_rows('"He said ""hi""",2') == [['He said "hi"', "2"]]

    def test_quoted_line_break_stays_in_cell(self):
        assert read_rows('"line1\nline2",x\n') == [["line1\nline2", "x"]]

    def test_crlf_and_bare_cr(self):
        assert read_rows("a,b\r\n1,2\r\n") == [["a", "b"], ["1", "2"]]
        assert read_rows("a\r1") == [["a"], ["1"]]

    def test_cells_are_trimmed(self):
        assert read_rows(" a , b ") == [["a", "b"]]

    def test_blank_rows_dropped(self):
        assert read_rows("a,b\n\n , \n1,2\n") == [["a", "b"], ["1", "2"]]

    def test_trailing_empty_cell_kept(self):
        assert read_rows("a,\n") == [["a", ""]]

    def test_unterminated_quote_runs_to_end(self):
        assert read_rows('a,"b\nc') == [["a", "b\nc"]]

    def test_custom_delimiter(self):
        assert read_rows("a;b\n1;2", delimiter=";") == [["a", "b"], ["1", "2"]]

    def test_empty_text(self):
        assert read_rows("") == []
