"""
Cycle tracker lifecycle.

Run with: pytest tests/test_tracker.py -v
"""

import pytest

from luabridge.tracker import MISSING, CycleTracker


class TestCycleTracker:
    def test_lookup_miss(self):
        with CycleTracker() as visited:
            assert visited.lookup([]) is MISSING

    def test_mark_and_lookup(self):
        source, produced = [1], object()
        with CycleTracker() as visited:
            visited.mark(source, produced)
            assert visited.lookup(source) is produced
            assert len(visited) == 1

    def test_identity_not_equality(self):
        with CycleTracker() as visited:
            visited.mark([1], 'first')
            assert visited.lookup([1]) is MISSING

    def test_custom_identity(self):
        with CycleTracker(identity=lambda obj: obj['key']) as visited:
            visited.mark({'key': 1}, 'one')
            assert visited.lookup({'key': 1}) == 'one'

    def test_close_releases_anchor(self):
        anchor = object()
        visited = CycleTracker(anchor=anchor)
        assert visited.anchor is anchor
        visited.close()
        assert visited.anchor is None
        assert len(visited) == 0

    def test_closed_on_exception(self):
        with pytest.raises(ValueError):
            with CycleTracker() as visited:
                visited.mark([1], 'x')
                raise ValueError()
        with pytest.raises(RuntimeError):
            visited.lookup([1])

    def test_lua_table_identity(self, bridge):
        table = bridge.eval('{1}')
        with bridge.vm.table_tracker() as visited:
            visited.mark(table, 'produced')
            bridge.globals().t = table
            assert visited.lookup(bridge.globals().t) == 'produced'
            assert visited.lookup(bridge.eval('{1}')) is MISSING
