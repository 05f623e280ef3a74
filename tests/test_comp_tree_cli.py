"""Tests for the ``comp_tree`` command line driver."""

from __future__ import annotations

import logging
import re
import subprocess
import sys
from pathlib import Path

import pytest

import comp_tree

ROOT = Path(__file__).resolve().parents[1]
LINE_PATTERN = re.compile(r"^what = (?P<expr>.+); /\* (?P<nodes>\d+) (?P<depth>\d+) \*/$")


@pytest.fixture()
def vocabulary(tmp_path: Path) -> tuple[Path, Path]:
    operators = tmp_path / "brnch.txt"
    operands = tmp_path / "leaf.txt"
    operators.write_text("( + ) 2 2\n", encoding="utf-8")
    operands.write_text("a b c\n", encoding="utf-8")
    return operators, operands


def test_cli_prints_one_line_per_expression(capsys, vocabulary) -> None:
    operators, operands = vocabulary

    status = comp_tree.main([str(operators), str(operands), "--count", "3", "--max-depth", "1"])
    lines = capsys.readouterr().out.splitlines()

    assert status == 0
    assert lines == [
        "what = (a+b); /* 2 1 */",
        "what = (c+a); /* 2 1 */",
        "what = (b+c); /* 2 1 */",
    ]


def test_cli_defaults_generate_twenty_five_expressions(capsys) -> None:
    status = comp_tree.main(
        [str(ROOT / "data" / "operators.txt"), str(ROOT / "data" / "operands.txt"), "--seed", "5"]
    )
    lines = capsys.readouterr().out.splitlines()

    assert status == 0
    assert len(lines) == 25
    for line in lines:
        match = LINE_PATTERN.match(line)
        assert match is not None, line
        expression = match.group("expr")
        assert expression.count("(") == expression.count(")")
        assert 1 <= int(match.group("depth")) <= 7


def test_cli_seed_makes_output_reproducible(capsys) -> None:
    args = [str(ROOT / "data" / "operators.txt"), str(ROOT / "data" / "operands.txt"), "--seed", "9", "--count", "5"]
    comp_tree.main(args)
    first = capsys.readouterr().out
    comp_tree.main(args)
    second = capsys.readouterr().out
    assert first == second


def test_cli_missing_input_file_fails_before_generating(capsys, caplog, tmp_path: Path, vocabulary) -> None:
    operators, _ = vocabulary

    with caplog.at_level(logging.ERROR):
        status = comp_tree.main([str(operators), str(tmp_path / "missing.txt")])

    assert status == 1
    assert capsys.readouterr().out == ""
    assert "Failed to open input files" in caplog.text


def test_cli_writes_to_output_file(tmp_path: Path, vocabulary) -> None:
    operators, operands = vocabulary
    destination = tmp_path / "out" / "expressions.txt"
    destination.parent.mkdir()

    status = comp_tree.main(
        [str(operators), str(operands), "--count", "2", "--max-depth", "1", "--output", str(destination)]
    )

    assert status == 0
    assert destination.read_text(encoding="utf-8").splitlines() == [
        "what = (a+b); /* 2 1 */",
        "what = (c+a); /* 2 1 */",
    ]


def test_cli_flags_override_config_file(capsys, tmp_path: Path, vocabulary) -> None:
    operators, operands = vocabulary
    config = tmp_path / "generator.yaml"
    config.write_text(
        "generator:\n  count: 4\n  max_depth: 1\n  line_template: '{expression} [{node_count}]'\n",
        encoding="utf-8",
    )

    status = comp_tree.main([str(operators), str(operands), "--config", str(config), "--count", "1"])

    assert status == 0
    assert capsys.readouterr().out.splitlines() == ["(a+b) [2]"]


def test_cli_rejects_invalid_config(caplog, tmp_path: Path, vocabulary) -> None:
    operators, operands = vocabulary
    config = tmp_path / "generator.yaml"
    config.write_text("max_nodes: -3\n", encoding="utf-8")

    with caplog.at_level(logging.ERROR):
        status = comp_tree.main([str(operators), str(operands), "--config", str(config)])

    assert status == 1
    assert "Invalid configuration" in caplog.text


def test_cli_rejects_template_with_attribute_lookup(caplog, tmp_path: Path, vocabulary) -> None:
    operators, operands = vocabulary
    config = tmp_path / "generator.yaml"
    config.write_text("line_template: '{expression.foo}'\n", encoding="utf-8")

    with caplog.at_level(logging.ERROR):
        status = comp_tree.main([str(operators), str(operands), "--config", str(config)])

    assert status == 1
    assert "Invalid configuration" in caplog.text


def test_cli_no_strict_overrides_strict_config(capsys, tmp_path: Path, vocabulary) -> None:
    operators, _ = vocabulary
    empty = tmp_path / "empty.txt"
    empty.write_text("", encoding="utf-8")
    config = tmp_path / "generator.yaml"
    config.write_text("strict: true\n", encoding="utf-8")

    status = comp_tree.main(
        [str(operators), str(empty), "--config", str(config), "--no-strict", "--count", "1", "--max-depth", "1"]
    )

    assert status == 0
    assert capsys.readouterr().out.splitlines() == ["what = (0+0); /* 2 1 */"]


def test_cli_strict_mode_aborts_on_read_failure(caplog, tmp_path: Path, vocabulary) -> None:
    operators, _ = vocabulary
    empty = tmp_path / "empty.txt"
    empty.write_text("", encoding="utf-8")

    with caplog.at_level(logging.ERROR):
        status = comp_tree.main([str(operators), str(empty), "--strict", "--count", "1"])

    assert status == 1
    assert "Generation aborted" in caplog.text


def test_cli_permissive_mode_substitutes_fallback_operand(capsys, tmp_path: Path, vocabulary) -> None:
    operators, _ = vocabulary
    empty = tmp_path / "empty.txt"
    empty.write_text("", encoding="utf-8")

    status = comp_tree.main([str(operators), str(empty), "--count", "1", "--max-depth", "1"])

    assert status == 0
    assert capsys.readouterr().out.splitlines() == ["what = (0+0); /* 2 1 */"]


def test_cli_summary_table_goes_to_stderr(capsys, vocabulary) -> None:
    operators, operands = vocabulary

    status = comp_tree.main(
        [str(operators), str(operands), "--count", "2", "--max-depth", "1", "--summary"]
    )
    captured = capsys.readouterr()

    assert status == 0
    assert "Generation Summary" in captured.err
    assert "Mean nodes" in captured.err
    assert "Generation Summary" not in captured.out


def test_cli_rejects_negative_count(vocabulary) -> None:
    operators, operands = vocabulary
    with pytest.raises(SystemExit) as excinfo:
        comp_tree.main([str(operators), str(operands), "--count", "-1"])
    assert excinfo.value.code == 2


def test_cli_runs_as_script(vocabulary) -> None:
    operators, operands = vocabulary
    completed = subprocess.run(
        [sys.executable, str(ROOT / "comp_tree.py"), str(operators), str(operands), "--count", "1", "--max-depth", "1"],
        check=False,
        capture_output=True,
        text=True,
        cwd=ROOT,
    )

    assert completed.returncode == 0
    assert completed.stdout.strip() == "what = (a+b); /* 2 1 */"
