"""Tests for DepthResolver: worst-case depth, cycles, unresolved targets."""

from __future__ import annotations

import sys

from structlog.testing import capture_logs

from stack_analyzer.builder import build_call_graph
from stack_analyzer.models.function import ResolutionState
from stack_analyzer.resolver import DepthResolver, UnresolvedCall, resolve_depths


class TestAcyclic:
    def test_caller_adds_callee_depth(self, make_record, graph_factory):
        a = make_record("A", 0x100, 0x11C, own=16, edges=[0x200])
        b = make_record("B", 0x200, 0x21C, own=8)
        graph = graph_factory(a, b)

        assert resolve_depths(graph) == []
        assert a.deepest_stack_bytes == 24
        assert b.deepest_stack_bytes == 8

    def test_leaf_deepest_equals_own(self, make_record, graph_factory):
        leaf = make_record("leaf", 0x100, 0x10C, own=40)
        resolve_depths(graph_factory(leaf))
        assert leaf.deepest_stack_bytes == 40

    def test_takes_maximum_branch(self, make_record, graph_factory):
        root = make_record("root", 0x100, 0x1FC, own=8, edges=[0x200, 0x300])
        shallow = make_record("shallow", 0x200, 0x2FC, own=16)
        deep = make_record("deep", 0x300, 0x3FC, own=4, edges=[0x400])
        deeper = make_record("deeper", 0x400, 0x4FC, own=64)
        graph = graph_factory(root, shallow, deep, deeper)
        resolve_depths(graph)

        assert deeper.deepest_stack_bytes == 64
        assert deep.deepest_stack_bytes == 68
        assert shallow.deepest_stack_bytes == 16
        assert root.deepest_stack_bytes == 76

    def test_edge_into_middle_of_callee(self, make_record, graph_factory):
        # tail-branch into another function's body still counts as that function
        a = make_record("a", 0x100, 0x10C, own=8, edges=[0x208])
        b = make_record("b", 0x200, 0x20C, own=32)
        resolve_depths(graph_factory(a, b))
        assert a.deepest_stack_bytes == 40

    def test_shared_callee_resolved_once(self, make_record, graph_factory):
        x = make_record("x", 0x100, 0x10C, own=8, edges=[0x300])
        y = make_record("y", 0x200, 0x20C, own=24, edges=[0x300])
        shared = make_record("shared", 0x300, 0x30C, own=16)
        resolve_depths(graph_factory(x, y, shared))
        assert x.deepest_stack_bytes == 24
        assert y.deepest_stack_bytes == 40
        assert shared.deepest_stack_bytes == 16

    def test_all_records_resolved_and_not_below_own(self, make_record, graph_factory):
        records = [
            make_record("a", 0x100, 0x10C, own=8, edges=[0x200, 0x900]),
            make_record("b", 0x200, 0x20C, own=0, edges=[0x300]),
            make_record("c", 0x300, 0x30C, own=12, edges=[0x100]),
            make_record("d", 0x400, 0x40C, own=4, indirect=True),
        ]
        resolve_depths(graph_factory(*records))
        for r in records:
            assert r.resolution_state is ResolutionState.RESOLVED
            assert r.deepest_stack_bytes >= r.own_stack_bytes

    def test_resolve_is_memoized(self, make_record, graph_factory):
        a = make_record("A", 0x100, 0x11C, own=16, edges=[0x200])
        b = make_record("B", 0x200, 0x21C, own=8)
        resolver = DepthResolver(graph_factory(a, b))
        assert resolver.resolve(a) == 24
        b.own_stack_bytes = 1000  # ignored once resolved
        assert resolver.resolve(a) == 24
        assert resolver.resolve(b) == 8


class TestCycles:
    def test_mutual_recursion_terminates(self, make_record, graph_factory):
        a = make_record("A", 0x100, 0x11C, own=16, edges=[0x200])
        b = make_record("B", 0x200, 0x21C, own=16, edges=[0x100])
        resolve_depths(graph_factory(a, b))

        # B finishes first: the edge back to A is cut with A's partial value 0
        assert b.deepest_stack_bytes == 16
        assert a.deepest_stack_bytes == 32
        assert a.resolution_state is ResolutionState.RESOLVED
        assert b.resolution_state is ResolutionState.RESOLVED

    def test_direct_recursion_via_other_entry(self, make_record, graph_factory):
        # A calls itself through an alias address outside its own range
        a = make_record("A", 0x100, 0x11C, own=24, edges=[0x200])
        trampoline = make_record("tramp", 0x200, 0x204, own=0, edges=[0x100])
        resolve_depths(graph_factory(a, trampoline))
        assert trampoline.deepest_stack_bytes == 0
        assert a.deepest_stack_bytes == 24

    def test_cycle_keeps_partial_value_of_earlier_branches(self, make_record, graph_factory):
        # A -> leaf (32) first, then A -> B -> A; B sees A's partial max of 32
        a = make_record("A", 0x100, 0x11C, own=8, edges=[0x300, 0x200])
        b = make_record("B", 0x200, 0x21C, own=4, edges=[0x100])
        leaf = make_record("leaf", 0x300, 0x30C, own=32)
        resolve_depths(graph_factory(a, b, leaf))
        assert b.deepest_stack_bytes == 36
        assert a.deepest_stack_bytes == 44

    def test_long_cycle(self, make_record, graph_factory):
        n = 50
        records = [
            make_record(f"f{i}", 0x1000 * (i + 1), 0x1000 * (i + 1) + 0xC, own=8,
                        edges=[0x1000 * ((i + 1) % n + 1)])
            for i in range(n)
        ]
        resolve_depths(graph_factory(*records))
        # f0 walks the full ring; the last hop back to f0 contributes 0
        assert records[0].deepest_stack_bytes == 8 * n
        assert all(r.deepest_stack_bytes <= 8 * n for r in records)

    def test_cycle_does_not_set_indirect_flag(self, make_record, graph_factory):
        a = make_record("A", 0x100, 0x11C, own=16, edges=[0x200])
        b = make_record("B", 0x200, 0x21C, own=16, edges=[0x100])
        resolve_depths(graph_factory(a, b))
        assert not a.has_indirect_call
        assert not b.has_indirect_call


class TestIndirectAndUnresolved:
    def test_indirect_call_only(self, make_record, graph_factory):
        f = make_record("dispatch", 0x100, 0x11C, own=32, indirect=True)
        resolve_depths(graph_factory(f))
        assert f.deepest_stack_bytes == 32
        assert f.has_indirect_call

    def test_unknown_target_contributes_zero(self, make_record, graph_factory):
        caller = make_record("caller", 0x100, 0x11C, own=16, edges=[0xDEAD0000, 0x200])
        callee = make_record("callee", 0x200, 0x20C, own=8)
        unresolved = resolve_depths(graph_factory(caller, callee))

        assert unresolved == [UnresolvedCall(caller="caller", target=0xDEAD0000)]
        assert caller.deepest_stack_bytes == 24

    def test_unknown_target_logged_as_warning(self, make_record, graph_factory):
        caller = make_record("caller", 0x100, 0x11C, own=16, edges=[0x80001000])
        graph = graph_factory(caller)
        with capture_logs() as logs:
            resolve_depths(graph)

        warnings = [e for e in logs if e["log_level"] == "warning"]
        assert warnings == [
            {
                "event": "resolver.unresolved_target",
                "log_level": "warning",
                "function": "caller",
                "target": "0x80001000",
            }
        ]

    def test_known_targets_not_logged(self, make_record, graph_factory):
        a = make_record("A", 0x100, 0x11C, own=16, edges=[0x200])
        b = make_record("B", 0x200, 0x21C, own=8)
        with capture_logs() as logs:
            resolve_depths(graph_factory(a, b))
        assert [e for e in logs if e["log_level"] == "warning"] == []

    def test_unknown_only_target(self, make_record, graph_factory):
        caller = make_record("caller", 0x100, 0x11C, own=16, edges=[0x5000])
        resolver = DepthResolver(graph_factory(caller))
        resolver.resolve_all()
        assert caller.deepest_stack_bytes == 16
        assert str(resolver.unresolved[0]) == "caller -> 0x00005000"


class TestDeepChain:
    def test_chain_longer_than_default_recursion_limit(self, make_record, graph_factory):
        n = 3000
        records = [
            make_record(f"f{i}", 0x10 * (i + 1), 0x10 * (i + 1) + 0xC, own=4,
                        edges=[0x10 * (i + 2)] if i + 1 < n else [])
            for i in range(n)
        ]
        resolve_depths(graph_factory(*records))
        assert records[0].deepest_stack_bytes == 4 * n

    def test_recursion_limit_restored(self, make_record, graph_factory):
        before = sys.getrecursionlimit()
        n = before + 500
        records = [
            make_record(f"f{i}", 0x10 * (i + 1), 0x10 * (i + 1) + 0xC, own=4,
                        edges=[0x10 * (i + 2)] if i + 1 < n else [])
            for i in range(n)
        ]
        resolve_depths(graph_factory(*records))
        assert records[0].deepest_stack_bytes == 4 * n
        assert sys.getrecursionlimit() == before


class TestSampleListing:
    def test_sample_depths(self, sample_lines):
        graph = build_call_graph(sample_lines)
        assert resolve_depths(graph) == []
        depths = {r.name: r.deepest_stack_bytes for r in graph}
        assert depths == {"main": 88, "read_sensor": 64, "filter": 16, "_startup": 88}
