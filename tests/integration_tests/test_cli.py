# tests/integration_tests/test_cli.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Test suite for the command-line entry point

import run_harness
from model.history import History
from model.operation import Op, OpType
from utils.history_log import write_history


def history_of(*events):
    return History(
        Op(p, OpType(t), f, v, time=i) for i, (p, t, f, v) in enumerate(events)
    )


class TestCheckMode:
    def test_linearizable_history_exits_zero(self, tmp_path, capsys):
        path = write_history(tmp_path / "ok.history", history_of(
            (0, "invoke", "write", "1"),
            (0, "ok", "write", "1"),
            (1, "invoke", "read", None),
            (1, "ok", "read", "1"),
        ))
        assert run_harness.main(["--check", str(path)]) == run_harness.EXIT_LINEARIZABLE
        assert "linearizable" in capsys.readouterr().out

    def test_violation_exits_one(self, tmp_path, capsys):
        path = write_history(tmp_path / "bad.history", history_of(
            (0, "invoke", "write", "1"),
            (0, "ok", "write", "1"),
            (1, "invoke", "read", None),
            (1, "ok", "read", "2"),
        ))
        assert run_harness.main(["--check", str(path)]) == run_harness.EXIT_INVALID
        assert "not-linearizable" in capsys.readouterr().out

    def test_unreadable_history_exits_three(self, tmp_path):
        path = tmp_path / "garbage.history"
        path.write_text("this is { not a history\n", encoding="utf-8")
        assert run_harness.main(["--check", str(path)]) == run_harness.EXIT_BAD_HISTORY

    def test_missing_history_exits_three(self, tmp_path):
        missing = str(tmp_path / "missing.history")
        assert run_harness.main(["--check", missing]) == run_harness.EXIT_BAD_HISTORY


class TestRunMode:
    def test_missing_inventory_is_fatal(self, tmp_path):
        code = run_harness.main(["--inventory", str(tmp_path / "ips")])
        assert code == run_harness.EXIT_FATAL

    def test_invalid_concurrency_is_fatal(self):
        assert run_harness.main(["--concurrency", "0"]) == run_harness.EXIT_FATAL

    def test_topology_from_node_flags(self):
        topo = run_harness.build_topology(["a", "b"], None, 9000)
        assert topo.nodes == ("a", "b")
        assert topo.address("b") == "b:9000"

    def test_default_topology(self):
        assert run_harness.build_topology(None, None, 8080).nodes == run_harness.DEFAULT_NODES
