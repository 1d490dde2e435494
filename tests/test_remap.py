"""Tests for diagnostic remapping and merge order."""

from embedlint.extract.mapper import PositionMapper
from embedlint.models import Diagnostic, Fix
from embedlint.remap import merge_diagnostics, remap_diagnostics


def _mapper(doc, *deletions):
    m = PositionMapper(doc)
    for start, end in deletions:
        m.replace(start, end)
    return m


class TestLocation:
    def test_location_and_source_remapped(self):
        m = _mapper("abc\n  foo", (0, 6))
        [d] = remap_diagnostics([Diagnostic(1, 2, "msg")], m)
        assert (d.line, d.column) == (2, 4)
        assert d.source == "  foo"

    def test_column_zero_treated_as_one(self):
        m = _mapper("abc\n  foo", (0, 6))
        [d] = remap_diagnostics([Diagnostic(1, 0, "msg")], m)
        assert (d.line, d.column) == (2, 3)

    def test_unmappable_primary_location_dropped(self):
        m = PositionMapper("abc")
        m.insert(0, "XX\n")
        out = remap_diagnostics([Diagnostic(1, 1, "synthetic"), Diagnostic(2, 1, "real")], m)
        assert [d.message for d in out] == ["real"]
        assert (out[0].line, out[0].column) == (1, 1)

    def test_out_of_range_line_dropped(self):
        m = PositionMapper("abc")
        assert remap_diagnostics([Diagnostic(9, 1, "msg")], m) == []


class TestEndLocation:
    def test_end_location_remapped(self):
        m = _mapper("  foo", (0, 2))
        [d] = remap_diagnostics([Diagnostic(1, 1, "msg", end_line=1, end_column=4)], m)
        assert (d.end_line, d.end_column) == (1, 6)

    def test_unmappable_end_left_untouched(self):
        m = _mapper("  foo", (0, 2))
        [d] = remap_diagnostics([Diagnostic(1, 1, "msg", end_line=5, end_column=1)], m)
        assert (d.end_line, d.end_column) == (5, 1)

    def test_end_at_fragment_end_stays_on_script_line(self):
        doc = "<script>foo</script>\n<p>\nhello\n</p>\n"
        m = _mapper(doc, (0, 8), (11, len(doc)))
        [d] = remap_diagnostics([Diagnostic(1, 1, "msg", end_line=1, end_column=4)], m)
        assert (d.line, d.column) == (1, 9)
        assert (d.end_line, d.end_column) == (1, 12)

    def test_partial_end_ignored(self):
        m = _mapper("  foo", (0, 2))
        [d] = remap_diagnostics([Diagnostic(1, 1, "msg", end_line=1)], m)
        assert (d.end_line, d.end_column) == (1, None)


class TestFix:
    # BOM, then "<s>", then the code "a;;" at document indices 4..6.
    DOC = "\ufeff<s>a;;</s>"

    def _diagnostic(self):
        return Diagnostic(1, 3, "Unnecessary semicolon.", fix=Fix(range=(2, 3)))

    def test_fix_range_exclusive_end(self):
        m = _mapper(self.DOC, (0, 4), (7, len(self.DOC)))
        [d] = remap_diagnostics([self._diagnostic()], m)
        assert d.fix.range == (6, 7)
        assert self.DOC[6:7] == ";"

    def test_bom_shifts_fix_range(self):
        m = _mapper(self.DOC, (0, 4), (7, len(self.DOC)))
        [d] = remap_diagnostics([self._diagnostic()], m, has_bom=True)
        assert d.fix.range == (5, 6)
        assert self.DOC[1:][5:6] == ";"
        # The reported location is not shifted.
        assert (d.line, d.column) == (1, 7)

    def test_fix_over_decoded_entity_covers_whole_entity(self):
        doc = "<script>a &lt; b</script>"
        m = PositionMapper(doc)
        m.replace(0, 8)
        m.replace(10, 14, "<")
        m.replace(16, len(doc))
        assert m.text == "a < b"
        [d] = remap_diagnostics([Diagnostic(1, 3, "msg", fix=Fix(range=(2, 3), text=">"))], m)
        start, end = d.fix.range
        assert doc[start:end] == "&lt;"
        assert doc[:start] + d.fix.text + doc[end:] == "<script>a > b</script>"

    def test_empty_fix_range_maps_end_to_start(self):
        m = _mapper("  foo", (0, 2))
        [d] = remap_diagnostics([Diagnostic(1, 1, "msg", fix=Fix(range=(1, 1), text=";"))], m)
        assert d.fix.range == (3, 3)
        assert d.fix.text == ";"

    def test_unmappable_fix_removed_diagnostic_kept(self):
        m = PositionMapper("abc")
        m.insert(0, "XX\n")
        [d] = remap_diagnostics([Diagnostic(2, 1, "msg", fix=Fix(range=(0, 2)))], m)
        assert d.fix is None
        assert d.message == "msg"


class TestMerge:
    def test_sorted_by_line_then_column(self):
        merged = merge_diagnostics(
            [
                [Diagnostic(3, 1, "c"), Diagnostic(1, 5, "b")],
                [Diagnostic(1, 2, "a")],
            ]
        )
        assert [d.message for d in merged] == ["a", "b", "c"]

    def test_stable_for_equal_positions(self):
        merged = merge_diagnostics([[Diagnostic(2, 1, "first")], [Diagnostic(2, 1, "second")]])
        assert [d.message for d in merged] == ["first", "second"]

    def test_empty(self):
        assert merge_diagnostics([]) == []
